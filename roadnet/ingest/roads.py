"""
Road-specific logic

Handles highway classification and derived per-road attributes
"""

import re
from typing import List, Optional, Tuple

from ..config import IngestConfig, get_config
from ..models import RoadClass, RoadRecord
from .models import RawWay

# Every recognised highway value maps to one road class; anything else is not a road
HIGHWAY_CLASSES = {
    "motorway": RoadClass.MOTORWAY,
    "motorway_link": RoadClass.MOTORWAY,
    "trunk": RoadClass.TRUNK,
    "trunk_link": RoadClass.TRUNK,
    "primary": RoadClass.PRIMARY,
    "primary_link": RoadClass.PRIMARY,
    "secondary": RoadClass.SECONDARY,
    "secondary_link": RoadClass.SECONDARY,
    "tertiary": RoadClass.TERTIARY,
    "tertiary_link": RoadClass.TERTIARY,
    "unclassified": RoadClass.OTHER,
    "residential": RoadClass.OTHER,
    "living_street": RoadClass.OTHER,
    "service": RoadClass.OTHER,
    "road": RoadClass.OTHER,
}

KMH_PER_MPH = 1.609344

_SPEED_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


class RoadProcessor:
    """Classifies ways and derives road attributes"""

    def __init__(self, config: Optional[IngestConfig] = None):
        self.config = config or get_config().ingest

    @staticmethod
    def classify(highway: Optional[str]) -> Optional[RoadClass]:
        """Road class for a highway tag value, None if the way is not a road"""
        if not highway:
            return None
        return HIGHWAY_CLASSES.get(highway.strip().lower())

    def build_road(self, way: RawWay, road_class: RoadClass, points: List[Tuple[float, float, float]]) -> RoadRecord:
        """
        Build the output record for a way whose points are already resolved

        Args:
            way: Source way
            road_class: Result of classify(way.highway)
            points: Planar [x, y, z] points in way order (at least 2)
        """
        return RoadRecord(
            id=str(way.id),
            type=road_class,
            name=way.name or way.ref or None,
            width=self._estimate_road_width(road_class),
            speed_limit=self._speed_limit(road_class, way.maxspeed),
            lanes=self._parse_lanes(way.lanes),
            surface=way.surface or self.config.default_surface,
            points=points,
        )

    def _estimate_road_width(self, road_class: RoadClass) -> float:
        widths = self.config.road_widths
        return float(widths.get(road_class.value, widths["default"]))

    def _speed_limit(self, road_class: RoadClass, maxspeed: Optional[str]) -> int:
        parsed = self._parse_speed_limit(maxspeed)
        if parsed is not None:
            return parsed
        limits = self.config.speed_limits
        return int(limits.get(road_class.value, limits["default"]))

    @staticmethod
    def _parse_speed_limit(maxspeed_str: Optional[str]) -> Optional[int]:
        """Parse OSM maxspeed ("60", "60 km/h", "30 mph") into km/h"""
        if not maxspeed_str:
            return None
        match = _SPEED_PATTERN.search(maxspeed_str)
        if not match:
            return None
        speed = float(match.group(1))
        if "mph" in maxspeed_str.lower():
            speed *= KMH_PER_MPH
        speed = int(round(speed))
        return speed if speed > 0 else None

    def _parse_lanes(self, lanes_str: Optional[str]) -> int:
        if not lanes_str:
            return self.config.default_lanes
        try:
            lanes = int(lanes_str.strip())
        except ValueError:
            return self.config.default_lanes
        return lanes if lanes > 0 else self.config.default_lanes
