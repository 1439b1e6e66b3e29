"""
ChunkManager - chunk-based world streaming

Divides the world into square chunks on the x/z plane and loads or unloads
them around an observer position (camera or vehicle). A chunk is atomic: it
is either fully built or not present at all.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from loguru import logger

from ..config import ChunkConfig, get_config
from ..models import POIRecord, RoadRecord
from .renderer import ChunkRenderer, MarkerRenderer

Cell = Tuple[int, int]


class ChunkState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    UNLOADING = "unloading"


@dataclass
class Chunk:
    cx: int
    cz: int
    state: ChunkState = ChunkState.UNLOADED
    roads: List[RoadRecord] = field(default_factory=list)
    pois: List[POIRecord] = field(default_factory=list)
    objects: List[Any] = field(default_factory=list)

    @property
    def key(self) -> Cell:
        return (self.cx, self.cz)


class ChunkManager:
    """
    Owns the chunk table and drives every chunk state transition

    Usage:
        manager = ChunkManager(renderer)
        manager.init(roads_document.roads, pois_document.pois)
        manager.update(vehicle_x, vehicle_z)  # every frame; throttled internally
    """

    def __init__(
        self,
        renderer: Optional[ChunkRenderer] = None,
        config: Optional[ChunkConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or get_config().chunks
        self.renderer = renderer or MarkerRenderer()
        self.clock = clock

        self.chunk_size = config.chunk_size
        self.load_distance = config.load_distance
        self.unload_distance = config.unload_distance
        self.update_interval = config.update_interval

        self.chunks: Dict[Cell, Chunk] = {}

        self.roads: List[RoadRecord] = []
        self.pois: List[POIRecord] = []
        self.road_index: Dict[Cell, List[int]] = {}
        self.poi_index: Dict[Cell, List[int]] = {}

        self.observer_chunk: Optional[Cell] = None
        self._observer_position: Optional[Tuple[float, float]] = None
        self._last_update_time: Optional[float] = None

        self.chunks_loaded = 0
        self.chunks_unloaded = 0

        self.on_chunk_loaded: Optional[Callable[[Chunk], None]] = None
        self.on_chunk_unloaded: Optional[Callable[[Chunk], None]] = None

    def init(self, roads: Sequence[RoadRecord], pois: Sequence[POIRecord]) -> None:
        """Take the immutable dataset and build the chunk index"""
        self.roads = list(roads)
        self.pois = list(pois)
        self.build_index()
        logger.info(f"ChunkManager initialized with {len(self.indexed_chunks())} chunk indices")

    # ------------------------------------------------------------
    # Index
    # ------------------------------------------------------------

    def chunk_coords(self, x: float, z: float) -> Cell:
        return (math.floor(x / self.chunk_size), math.floor(z / self.chunk_size))

    def get_road_chunks(self, road: RoadRecord) -> Set[Cell]:
        """Every chunk containing at least one of the road's points"""
        return {self.chunk_coords(x, z) for x, _, z in road.points}

    def build_index(self) -> None:
        """Rebuild the chunk -> road/POI index from scratch"""
        self.road_index = {}
        self.poi_index = {}

        for i, road in enumerate(self.roads):
            for cell in self.get_road_chunks(road):
                self.road_index.setdefault(cell, []).append(i)

        for i, poi in enumerate(self.pois):
            self.poi_index.setdefault(self.chunk_coords(poi.x, poi.z), []).append(i)

    def indexed_chunks(self) -> Set[Cell]:
        return set(self.road_index) | set(self.poi_index)

    def has_data(self, cell: Cell) -> bool:
        return cell in self.road_index or cell in self.poi_index

    # ------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------

    def update(self, observer_x: float, observer_z: float) -> bool:
        """
        Update chunk loading/unloading for the observer position

        Returns:
            True if the loaded set was re-evaluated
        """
        now = self.clock()
        if self._last_update_time is not None and now - self._last_update_time < self.update_interval:
            return False
        self._last_update_time = now
        self._observer_position = (observer_x, observer_z)

        new_chunk = self.chunk_coords(observer_x, observer_z)
        if new_chunk == self.observer_chunk:
            return False

        self.observer_chunk = new_chunk
        self._update_chunks()
        return True

    def _update_chunks(self) -> None:
        if self.observer_chunk is None:
            return
        ox, oz = self.observer_chunk

        to_load = []
        for dx in range(-self.load_distance, self.load_distance + 1):
            for dz in range(-self.load_distance, self.load_distance + 1):
                cell = (ox + dx, oz + dz)
                if self.has_data(cell) and cell not in self.chunks:
                    to_load.append(cell)

        to_unload = [
            cell for cell in self.chunks
            if max(abs(cell[0] - ox), abs(cell[1] - oz)) > self.unload_distance
        ]

        for cell in to_load:
            self._load_chunk(cell)
        for cell in to_unload:
            self._unload_chunk(cell)

        if to_load or to_unload:
            logger.debug(f"Observer chunk {self.observer_chunk}: loaded {len(to_load)}, "
                         f"unloaded {len(to_unload)}, active {len(self.chunks)}")

    def _load_chunk(self, cell: Cell) -> None:
        chunk = Chunk(cx=cell[0], cz=cell[1], state=ChunkState.LOADING)
        chunk.roads = [self.roads[i] for i in self.road_index.get(cell, ())]
        chunk.pois = [self.pois[i] for i in self.poi_index.get(cell, ())]

        try:
            for road in chunk.roads:
                obj = self.renderer.build_road(road)
                if obj is not None:
                    chunk.objects.append(obj)
            for poi in chunk.pois:
                obj = self.renderer.build_poi(poi)
                if obj is not None:
                    chunk.objects.append(obj)
        except Exception:
            logger.error(f"Failed to build chunk {cell}; discarding partial objects")
            self._dispose_objects(chunk.objects)
            raise

        chunk.state = ChunkState.LOADED
        self.chunks[cell] = chunk
        self.chunks_loaded += 1

        if self.on_chunk_loaded:
            self.on_chunk_loaded(chunk)

    def _unload_chunk(self, cell: Cell) -> None:
        chunk = self.chunks.get(cell)
        if chunk is None:
            return

        chunk.state = ChunkState.UNLOADING
        self._dispose_objects(chunk.objects)
        chunk.objects = []
        del self.chunks[cell]
        chunk.state = ChunkState.UNLOADED
        self.chunks_unloaded += 1

        if self.on_chunk_unloaded:
            self.on_chunk_unloaded(chunk)

    def _dispose_objects(self, objects: Iterable[Any]) -> None:
        for obj in objects:
            self.renderer.dispose(obj)

    def reload_all_chunks(self) -> None:
        """Force reload of all chunks around the observer"""
        for cell in list(self.chunks):
            self._unload_chunk(cell)
        self._update_chunks()

    def set_parameters(
        self,
        chunk_size: Optional[float] = None,
        load_distance: Optional[int] = None,
        unload_distance: Optional[int] = None,
    ) -> None:
        """Change streaming parameters; a new chunk size rebuilds everything"""
        if load_distance is not None:
            self.load_distance = load_distance
        if unload_distance is not None:
            self.unload_distance = unload_distance

        if chunk_size is not None and chunk_size != self.chunk_size:
            if chunk_size <= 0:
                raise ValueError(f"chunk_size must be positive, got {chunk_size}")
            for cell in list(self.chunks):
                self._unload_chunk(cell)
            self.chunk_size = chunk_size
            self.build_index()
            if self._observer_position is not None:
                self.observer_chunk = self.chunk_coords(*self._observer_position)

        self._update_chunks()

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def is_position_loaded(self, x: float, z: float) -> bool:
        return self.chunk_coords(x, z) in self.chunks

    def get_chunk_at_position(self, x: float, z: float) -> Optional[Chunk]:
        return self.chunks.get(self.chunk_coords(x, z))

    def get_stats(self) -> Dict[str, Any]:
        return {
            "activeChunks": len(self.chunks),
            "totalLoaded": self.chunks_loaded,
            "totalUnloaded": self.chunks_unloaded,
            "observerChunk": self.observer_chunk,
            "chunkSize": self.chunk_size,
        }

    def dispose(self) -> None:
        """Unload everything and drop the index"""
        for cell in list(self.chunks):
            self._unload_chunk(cell)
        self.road_index.clear()
        self.poi_index.clear()
