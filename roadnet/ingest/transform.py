"""
Geodetic to planar coordinate transform

Linear scaling around a fixed origin. This is not a true projection; the
scale constants are chosen for the target latitude band and the error is
acceptable over a single bounded region.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import IngestConfig


@dataclass(frozen=True)
class CoordinateTransform:
    """Converts (lat, lon, ele) to game-space (x, y, z) meters and back"""
    origin_lat: float
    origin_lon: float
    meters_per_degree_lat: float
    meters_per_degree_lon: float

    @classmethod
    def from_config(cls, config: IngestConfig) -> "CoordinateTransform":
        return cls(
            origin_lat=config.origin_lat,
            origin_lon=config.origin_lon,
            meters_per_degree_lat=config.meters_per_degree_lat,
            meters_per_degree_lon=config.meters_per_degree_lon,
        )

    def to_planar(self, lat: float, lon: float, ele: Optional[float] = None) -> Tuple[float, float, float]:
        """x grows east, z grows south, y is elevation (0 when unknown)"""
        x = (lon - self.origin_lon) * self.meters_per_degree_lon
        y = ele if ele is not None else 0.0
        z = (self.origin_lat - lat) * self.meters_per_degree_lat
        return (x, y, z)

    def to_geodetic(self, x: float, z: float) -> Tuple[float, float]:
        """Inverse of to_planar, returns (lat, lon)"""
        lat = self.origin_lat - z / self.meters_per_degree_lat
        lon = self.origin_lon + x / self.meters_per_degree_lon
        return (lat, lon)
