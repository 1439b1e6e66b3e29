"""
Points of interest: cities, towns and fuel stations
"""

from typing import Optional, Tuple

from ..config import IngestConfig, get_config
from ..models import POICategory, POIRecord
from .models import RawNode

PLACE_CATEGORIES = {
    "city": POICategory.CITY,
    "town": POICategory.TOWN,
}


class POIProcessor:
    """Derives POI records from tagged nodes"""

    def __init__(self, config: Optional[IngestConfig] = None):
        self.config = config or get_config().ingest

    @staticmethod
    def classify(node: RawNode) -> Optional[POICategory]:
        """A place tag wins over amenity=fuel when a node carries both"""
        if node.place in PLACE_CATEGORIES:
            return PLACE_CATEGORIES[node.place]
        if node.amenity == "fuel":
            return POICategory.FUEL_STATION
        return None

    def build_poi(self, node: RawNode, category: POICategory, position: Tuple[float, float, float]) -> POIRecord:
        name = node.name
        if name is None and category == POICategory.FUEL_STATION:
            name = self.config.fuel_default_name
        x, y, z = position
        return POIRecord(id=str(node.id), type=category, name=name, x=x, y=y, z=z)
