"""
Raw OSM data models

Data classes for OSM nodes and ways as they exist during ingestion.
Only the tag keys the pipeline consumes are kept, as typed fields.
"""

from typing import List, Optional, Tuple
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RawNode:
    """Represents an OSM node (point)"""
    id: int
    lat: float
    lon: float
    ele: Optional[float] = None
    name: Optional[str] = None
    place: Optional[str] = None
    amenity: Optional[str] = None


@dataclass(frozen=True)
class RawWay:
    """Represents an OSM way (ordered node references)"""
    id: int
    node_refs: Tuple[int, ...]
    highway: Optional[str] = None
    name: Optional[str] = None
    ref: Optional[str] = None
    maxspeed: Optional[str] = None
    lanes: Optional[str] = None
    surface: Optional[str] = None


@dataclass(frozen=True)
class ElevationSample:
    """Known elevation at a geodetic point"""
    lat: float
    lon: float
    ele: float


@dataclass
class ParsedOSM:
    """Parser output: nodes in document order and ways in document order"""
    nodes: List[RawNode] = field(default_factory=list)
    ways: List[RawWay] = field(default_factory=list)
