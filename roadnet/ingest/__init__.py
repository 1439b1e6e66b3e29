"""
OSM ingestion module

Components:
- Models: Raw data structures (RawNode, RawWay, ElevationSample)
- Parser: OSM XML / Overpass JSON parsing
- Transform: Geodetic to planar coordinates
- Elevation: Inverse-distance-weighted interpolation
- Roads / POIs: Classification and derived attributes
- Pipeline: Parallel orchestration and output documents
- API client / Download: Overpass region download with mirror failover
"""

from .models import RawNode, RawWay, ElevationSample, ParsedOSM
from .parser import OSMDocumentParser
from .transform import CoordinateTransform
from .elevation import SampleSet, estimate_elevation, interpolate_elevation
from .pipeline import IngestionPipeline, IngestResult, IngestStats, find_latest_osm_file
from .download import RegionDownloader

__all__ = [
    "RawNode",
    "RawWay",
    "ElevationSample",
    "ParsedOSM",
    "OSMDocumentParser",
    "CoordinateTransform",
    "SampleSet",
    "estimate_elevation",
    "interpolate_elevation",
    "IngestionPipeline",
    "IngestResult",
    "IngestStats",
    "find_latest_osm_file",
    "RegionDownloader",
]
