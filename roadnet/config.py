"""
Configuration settings for the roadnet world builder
"""

from dataclasses import dataclass, field
from typing import Dict, List
import os

from .errors import ConfigError


@dataclass(frozen=True)
class Region:
    """Named geographic bounding box (degrees)"""
    name: str
    south: float
    west: float
    north: float
    east: float
    description: str = ""

    def as_overpass_bbox(self) -> str:
        """Overpass QL bbox order: south,west,north,east"""
        return f"{self.south},{self.west},{self.north},{self.east}"


@dataclass
class APIConfig:
    """Overpass endpoints and request settings"""
    # Tried in order; the download only fails once every mirror has failed
    overpass_mirrors: List[str] = field(default_factory=lambda: [
        "https://overpass-api.de/api/interpreter",
        "https://lz4.overpass-api.de/api/interpreter",
        "https://z.overpass-api.de/api/interpreter",
        "https://overpass.kumi.systems/api/interpreter",
    ])
    overpass_timeout: int = 180

    # Request settings
    max_retries: int = 2  # per mirror
    retry_delay: float = 5.0

    user_agent: str = "RoadnetWorldBuilder/1.0"


@dataclass
class IngestConfig:
    """Ingestion and coordinate transform settings"""
    # Planar origin; every output coordinate is relative to this point
    origin_lat: float = 7.5
    origin_lon: float = 124.5

    # Fixed scale for the target latitude band (not a true projection)
    meters_per_degree_lat: float = 111320.0
    meters_per_degree_lon: float = 109540.0

    # Road width estimates by class (meters)
    road_widths: Dict[str, float] = field(default_factory=lambda: {
        "motorway": 14.0,
        "trunk": 12.0,
        "primary": 10.0,
        "secondary": 8.0,
        "tertiary": 6.0,
        "default": 6.0,
    })

    # Speed limits by class (km/h)
    speed_limits: Dict[str, int] = field(default_factory=lambda: {
        "motorway": 100,
        "trunk": 80,
        "primary": 60,
        "secondary": 50,
        "tertiary": 40,
        "default": 40,
    })

    default_lanes: int = 2
    default_surface: str = "asphalt"
    fuel_default_name: str = "Gas Station"

    # Elevation interpolation (degrees)
    elevation_max_distance_deg: float = 0.1
    elevation_exact_match_deg: float = 0.0001

    workers: int = field(default_factory=lambda: os.cpu_count() or 1)

    input_dir: str = os.path.join("data", "raw")
    output_dir: str = os.path.join("data", "processed")


@dataclass
class GraphConfig:
    """Pathfinding graph settings (meters)"""
    grid_cell_size: float = 100.0
    merge_threshold: float = 5.0
    node_interval: float = 50.0
    max_search_radius: int = 20  # in grid cells
    simplify_tolerance: float = 5.0


@dataclass
class ChunkConfig:
    """World streaming settings"""
    chunk_size: float = 500.0  # meters
    load_distance: int = 2  # chunks
    unload_distance: int = 4  # chunks
    update_interval: float = 0.5  # seconds between chunk updates


@dataclass
class RoadnetConfig:
    """Top-level configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    chunks: ChunkConfig = field(default_factory=ChunkConfig)

    regions: Dict[str, Region] = field(default_factory=lambda: {
        "mindanao": Region("mindanao", 5.5, 121.9, 9.8, 126.6, "Whole island"),
        "davao": Region("davao", 6.9, 125.3, 7.4, 125.7, "Davao City and surroundings"),
        "cagayan_de_oro": Region("cagayan_de_oro", 8.3, 124.5, 8.6, 124.8, "Cagayan de Oro"),
        "general_santos": Region("general_santos", 6.0, 125.0, 6.3, 125.3, "General Santos"),
        "zamboanga": Region("zamboanga", 6.85, 121.95, 7.15, 122.2, "Zamboanga City"),
    })
    default_region: str = "mindanao"


# Global config instance
config = RoadnetConfig()


def get_config() -> RoadnetConfig:
    """Get global configuration"""
    return config


def validate_config(config: RoadnetConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ConfigError if any required value is missing or invalid.
    """
    errors = []

    if not config.api.overpass_mirrors:
        errors.append("api.overpass_mirrors must list at least one endpoint")
    if config.api.max_retries < 1:
        errors.append(f"api.max_retries must be >= 1, got {config.api.max_retries}")

    ingest = config.ingest
    if ingest.meters_per_degree_lat <= 0 or ingest.meters_per_degree_lon <= 0:
        errors.append("ingest.meters_per_degree_* must be positive")
    for table_name in ("road_widths", "speed_limits"):
        if "default" not in getattr(ingest, table_name):
            errors.append(f"ingest.{table_name} needs a 'default' entry")
    if ingest.workers < 1:
        errors.append(f"ingest.workers must be >= 1, got {ingest.workers}")
    if ingest.elevation_max_distance_deg <= ingest.elevation_exact_match_deg:
        errors.append("ingest.elevation_max_distance_deg must exceed elevation_exact_match_deg")

    graph = config.graph
    if graph.grid_cell_size <= 0:
        errors.append(f"graph.grid_cell_size must be positive, got {graph.grid_cell_size}")
    if graph.merge_threshold <= 0 or graph.merge_threshold > graph.grid_cell_size:
        errors.append("graph.merge_threshold must be positive and no larger than grid_cell_size")

    chunks = config.chunks
    if chunks.chunk_size <= 0:
        errors.append(f"chunks.chunk_size must be positive, got {chunks.chunk_size}")
    if chunks.unload_distance < chunks.load_distance:
        errors.append(
            f"chunks.unload_distance ({chunks.unload_distance}) must be >= "
            f"load_distance ({chunks.load_distance})"
        )

    if config.default_region not in config.regions:
        errors.append(f"default_region '{config.default_region}' is not a configured region")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigError(error_msg)
