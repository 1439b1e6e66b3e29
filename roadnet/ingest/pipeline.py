"""
Ingestion pipeline: OSM document -> roads.json + pois.json

Stages:
  1. Parse the document into RawNode / RawWay records
  2. Node pass (parallel): node lookup, POI candidates, elevation samples
  3. Way pass (parallel): classify ways, resolve points to planar [x, y, z]
  4. POIs: planar position with resolved elevation
  5. Assemble the two documents and summary statistics

Workers never touch shared pipeline state; each builds a local result and
merges it into the pass accumulator under its lock. Results are reassembled
in chunk order so repeated runs produce identical output.

The per-chunk work is pure Python, so under the GIL the thread pool gives the
passes their fan-out/fan-in structure rather than a CPU speedup.
"""

import json
import math
import os
import tempfile
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar
from loguru import logger

from ..config import RoadnetConfig, get_config
from ..errors import InputError
from ..models import (
    Bounds, Origin, POICategory, POIRecord, POIsDocument, RoadRecord, RoadsDocument, RoadsMeta
)
from .elevation import SampleSet, estimate_elevation
from .models import ElevationSample, ParsedOSM, RawNode, RawWay
from .parser import OSMDocumentParser
from .pois import POIProcessor
from .roads import RoadProcessor
from .transform import CoordinateTransform

T = TypeVar("T")
R = TypeVar("R")

ROADS_FILENAME = "roads.json"
POIS_FILENAME = "pois.json"


# ============================================================
# Results
# ============================================================

@dataclass
class IngestStats:
    """Summary counters for one ingestion run"""
    nodes: int = 0
    ways: int = 0
    roads: int = 0
    skipped_ways: int = 0
    missing_node_refs: int = 0
    short_roads: int = 0
    total_points: int = 0
    points_with_elevation: int = 0
    points_with_direct_elevation: int = 0
    points_unresolved_elevation: int = 0
    elevation_samples: int = 0
    pois: int = 0
    bounds: Bounds = field(default_factory=Bounds)


@dataclass
class IngestResult:
    roads_document: RoadsDocument
    pois_document: POIsDocument
    stats: IngestStats


@dataclass
class _NodeChunkResult:
    nodes: Dict[int, RawNode] = field(default_factory=dict)
    poi_candidates: List[Tuple[RawNode, POICategory]] = field(default_factory=list)
    samples: List[ElevationSample] = field(default_factory=list)


@dataclass
class _WayChunkResult:
    roads: List[RoadRecord] = field(default_factory=list)
    skipped_ways: int = 0
    missing_node_refs: int = 0
    short_roads: int = 0
    total_points: int = 0
    points_with_elevation: int = 0
    points_with_direct_elevation: int = 0
    points_unresolved_elevation: int = 0


class _ChunkAccumulator(Generic[R]):
    """Fan-in point for worker results; the only shared state during a pass"""

    def __init__(self, chunk_count: int):
        self._lock = threading.Lock()
        self._results: List[Optional[R]] = [None] * chunk_count

    def merge(self, index: int, result: R) -> None:
        with self._lock:
            self._results[index] = result

    def ordered(self) -> List[R]:
        with self._lock:
            return [r for r in self._results if r is not None]


def partition(items: Sequence[T], workers: int) -> List[Sequence[T]]:
    """Split items into at most `workers` contiguous chunks"""
    if not items:
        return []
    chunk_size = math.ceil(len(items) / max(1, workers))
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


# ============================================================
# Pipeline
# ============================================================

class IngestionPipeline:
    """
    Converts an OSM document into the canonical road and POI dataset

    Usage:
        pipeline = IngestionPipeline()
        result = pipeline.run_file("data/raw/mindanao.osm")
        pipeline.save(result, "data/processed")
    """

    def __init__(self, config: Optional[RoadnetConfig] = None, workers: Optional[int] = None):
        self.config = config or get_config()
        self.ingest_config = self.config.ingest
        self.workers = workers or self.ingest_config.workers
        self.transform = CoordinateTransform.from_config(self.ingest_config)
        self.parser = OSMDocumentParser()
        self.road_processor = RoadProcessor(self.ingest_config)
        self.poi_processor = POIProcessor(self.ingest_config)

    def run_file(self, path: str) -> IngestResult:
        """
        Read and process an OSM file

        Raises:
            InputError: If the file is missing or unreadable
            OSMParseError: If the document root is malformed
        """
        if not os.path.isfile(path):
            raise InputError(f"Input file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise InputError(f"Cannot read input file {path}: {e}") from e

        logger.info(f"Input: {path} ({os.path.getsize(path) / (1024 * 1024):.1f} MB)")
        return self.run(text)

    def run(self, text: str) -> IngestResult:
        """Process a fully buffered OSM document"""
        start = time.time()

        logger.info("Parsing OSM data...")
        parsed: ParsedOSM = self.parser.parse(text)
        logger.info(f"  Parsed {len(parsed.nodes)} nodes, {len(parsed.ways)} ways")

        logger.info(f"Processing nodes with {self.workers} workers...")
        node_results = self._run_parallel(parsed.nodes, self._process_node_chunk)
        nodes: Dict[int, RawNode] = {}
        poi_candidates: List[Tuple[RawNode, POICategory]] = []
        samples: List[ElevationSample] = []
        for chunk_result in node_results:
            nodes.update(chunk_result.nodes)
            poi_candidates.extend(chunk_result.poi_candidates)
            samples.extend(chunk_result.samples)
        sample_set = SampleSet.from_samples(samples)
        logger.info(f"  Nodes: {len(nodes)} | POI candidates: {len(poi_candidates)} | "
                    f"Elevation points: {len(sample_set)}")

        logger.info("Processing roads...")
        way_results = self._run_parallel(
            parsed.ways, lambda chunk: self._process_way_chunk(chunk, nodes, sample_set)
        )

        stats = IngestStats(nodes=len(nodes), ways=len(parsed.ways), elevation_samples=len(sample_set))
        roads: List[RoadRecord] = []
        for chunk_result in way_results:
            roads.extend(chunk_result.roads)
            stats.skipped_ways += chunk_result.skipped_ways
            stats.missing_node_refs += chunk_result.missing_node_refs
            stats.short_roads += chunk_result.short_roads
            stats.total_points += chunk_result.total_points
            stats.points_with_elevation += chunk_result.points_with_elevation
            stats.points_with_direct_elevation += chunk_result.points_with_direct_elevation
            stats.points_unresolved_elevation += chunk_result.points_unresolved_elevation
        stats.roads = len(roads)

        pois = [self._build_poi(node, category, sample_set) for node, category in poi_candidates]
        stats.pois = len(pois)
        stats.bounds = self.calculate_bounds(roads)

        logger.info(f"  Roads: {stats.roads} | Points: {stats.total_points} | "
                    f"Skipped ways: {stats.skipped_ways} | Short roads: {stats.short_roads}")
        logger.info(f"  Points with elevation: {stats.points_with_elevation} / {stats.total_points}")
        if stats.points_unresolved_elevation:
            logger.warning(f"  {stats.points_unresolved_elevation} points have no elevation data nearby, "
                           f"defaulted to sea level")
        if stats.missing_node_refs:
            logger.debug(f"  {stats.missing_node_refs} node references did not resolve")
        if stats.bounds.min_y != 0 or stats.bounds.max_y != 0:
            logger.info(f"  Elevation range: {stats.bounds.min_y:.1f}m to {stats.bounds.max_y:.1f}m")

        origin = Origin(lat=self.ingest_config.origin_lat, lon=self.ingest_config.origin_lon)
        roads_document = RoadsDocument(
            meta=RoadsMeta(
                origin=origin,
                bounds=stats.bounds,
                total_roads=stats.roads,
                total_points=stats.total_points,
                points_with_elevation=stats.points_with_elevation,
                total_pois=stats.pois,
            ),
            roads=roads,
        )
        pois_document = POIsDocument(origin=origin, pois=pois)

        logger.info(f"Processing complete in {time.time() - start:.1f}s")
        return IngestResult(roads_document=roads_document, pois_document=pois_document, stats=stats)

    def save(self, result: IngestResult, output_dir: Optional[str] = None) -> Tuple[str, str]:
        """
        Write roads.json and pois.json

        Both documents are written to temporary files first and only moved into
        place once both serialized successfully. If moving the second file fails
        the first has already been replaced; the error is logged and re-raised
        and no temporary files are left behind.
        """
        output_dir = output_dir or self.ingest_config.output_dir
        os.makedirs(output_dir, exist_ok=True)

        roads_path = os.path.join(output_dir, ROADS_FILENAME)
        pois_path = os.path.join(output_dir, POIS_FILENAME)

        staged = []
        try:
            staged.append((_stage_json(output_dir, dump_document(result.roads_document)), roads_path))
            staged.append((_stage_json(output_dir, dump_document(result.pois_document)), pois_path))
        except Exception:
            for temp_path, _ in staged:
                os.unlink(temp_path)
            raise

        # Each replace is atomic on its own; the pair is not
        for i, (temp_path, final_path) in enumerate(staged):
            try:
                os.replace(temp_path, final_path)
            except OSError:
                replaced = [path for _, path in staged[:i]]
                logger.error(f"Failed to move {final_path} into place; already replaced: {replaced or 'none'}. "
                             f"The output pair in {output_dir} is inconsistent until the next save")
                for leftover, _ in staged[i:]:
                    if os.path.exists(leftover):
                        os.unlink(leftover)
                raise

        logger.info(f"Saved to: {output_dir}")
        return roads_path, pois_path

    # ------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------

    def _run_parallel(self, items: Sequence[T], worker: Callable[[Sequence[T]], R]) -> List[R]:
        chunks = partition(items, self.workers)
        if not chunks:
            return []
        accumulator: _ChunkAccumulator[R] = _ChunkAccumulator(len(chunks))

        def run_chunk(index: int, chunk: Sequence[T]) -> None:
            accumulator.merge(index, worker(chunk))

        with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
            futures = [executor.submit(run_chunk, i, chunk) for i, chunk in enumerate(chunks)]
            # result() re-raises the first worker error in the calling thread
            for future in as_completed(futures):
                future.result()

        return accumulator.ordered()

    def _process_node_chunk(self, chunk: Sequence[RawNode]) -> _NodeChunkResult:
        result = _NodeChunkResult()
        for node in chunk:
            result.nodes[node.id] = node
            if node.ele is not None:
                result.samples.append(ElevationSample(lat=node.lat, lon=node.lon, ele=node.ele))
            category = self.poi_processor.classify(node)
            if category is not None:
                result.poi_candidates.append((node, category))
        return result

    def _process_way_chunk(
        self,
        chunk: Sequence[RawWay],
        nodes: Dict[int, RawNode],
        samples: SampleSet
    ) -> _WayChunkResult:
        result = _WayChunkResult()
        elevation_cache: Dict[int, Tuple[Optional[float], str]] = {}

        for way in chunk:
            road_class = self.road_processor.classify(way.highway)
            if road_class is None:
                result.skipped_ways += 1
                continue

            points = []
            counts = {"direct": 0, "interpolated": 0, "unresolved": 0}
            for ref in way.node_refs:
                node = nodes.get(ref)
                if node is None:
                    result.missing_node_refs += 1
                    continue
                if ref not in elevation_cache:
                    elevation_cache[ref] = self._resolve_elevation(node, samples)
                elevation, source = elevation_cache[ref]
                counts[source] += 1
                points.append(self.transform.to_planar(node.lat, node.lon, elevation))

            if len(points) < 2:
                result.short_roads += 1
                continue

            result.roads.append(self.road_processor.build_road(way, road_class, points))
            result.total_points += len(points)
            result.points_with_elevation += counts["direct"] + counts["interpolated"]
            result.points_with_direct_elevation += counts["direct"]
            result.points_unresolved_elevation += counts["unresolved"]

        return result

    def _resolve_elevation(self, node: RawNode, samples: SampleSet) -> Tuple[Optional[float], str]:
        """Direct ele tag, else IDW estimate, else unresolved (written as 0)"""
        if node.ele is not None:
            return node.ele, "direct"
        estimate = estimate_elevation(
            node.lat,
            node.lon,
            samples,
            max_distance=self.ingest_config.elevation_max_distance_deg,
            exact_match=self.ingest_config.elevation_exact_match_deg,
        )
        if estimate is None:
            return None, "unresolved"
        return estimate, "interpolated"

    def _build_poi(self, node: RawNode, category: POICategory, samples: SampleSet) -> POIRecord:
        elevation, _ = self._resolve_elevation(node, samples)
        position = self.transform.to_planar(node.lat, node.lon, elevation)
        return self.poi_processor.build_poi(node, category, position)

    @staticmethod
    def calculate_bounds(roads: Sequence[RoadRecord]) -> Bounds:
        """Axis-aligned bounds of every road point; all zeros when there are no points"""
        all_points = [point for road in roads for point in road.points]
        if not all_points:
            return Bounds()
        xs, ys, zs = zip(*all_points)
        return Bounds(
            min_x=min(xs), max_x=max(xs),
            min_y=min(ys), max_y=max(ys),
            min_z=min(zs), max_z=max(zs),
        )


# ============================================================
# Serialization helpers
# ============================================================

def dump_document(document: Any) -> Dict[str, Any]:
    return document.model_dump(mode="json", by_alias=True)


def _stage_json(directory: str, data: Dict[str, Any]) -> str:
    fd, temp_path = tempfile.mkstemp(dir=directory, prefix=".roadnet-", suffix=".json.tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except Exception:
        os.unlink(temp_path)
        raise
    return temp_path


def find_latest_osm_file(input_dir: str) -> Optional[str]:
    """Most recently modified *.osm file in input_dir, or None"""
    if not os.path.isdir(input_dir):
        return None
    candidates = [
        os.path.join(input_dir, name)
        for name in os.listdir(input_dir)
        if name.endswith(".osm")
    ]
    if not candidates:
        return None
    return max(candidates, key=os.path.getmtime)
