"""
Renderer seam for chunk streaming

The real renderer lives outside this package. It receives roads and POIs
when a chunk loads and must release whatever it built when asked to dispose.
"""

from typing import Any, Dict, Protocol

from ..models import POICategory, POIRecord, RoadRecord

# POI marker colour and pole height (meters) by category
POI_MARKER_STYLES = {
    POICategory.CITY.value: (0xFF5722, 100.0),
    POICategory.TOWN.value: (0xFF9800, 75.0),
    POICategory.FUEL_STATION.value: (0x2196F3, 50.0),
}
DEFAULT_MARKER_STYLE = (0x4CAF50, 50.0)


class ChunkRenderer(Protocol):
    def build_road(self, road: RoadRecord) -> Any: ...

    def build_poi(self, poi: POIRecord) -> Any: ...

    def dispose(self, obj: Any) -> None: ...


class MarkerRenderer:
    """Produces plain descriptors instead of meshes; used headless and in tools"""

    def __init__(self):
        self.live_objects = 0

    def build_road(self, road: RoadRecord) -> Dict[str, Any]:
        self.live_objects += 1
        return {
            "kind": "road",
            "road_id": road.id,
            "type": road.type,
            "width": road.width,
            "points": list(road.points),
        }

    def build_poi(self, poi: POIRecord) -> Dict[str, Any]:
        color, height = POI_MARKER_STYLES.get(poi.type, DEFAULT_MARKER_STYLE)
        self.live_objects += 1
        return {
            "kind": "poi_marker",
            "poi_id": poi.id,
            "name": poi.name,
            "color": color,
            "height": height,
            "position": (poi.x, 0.0, poi.z),
        }

    def dispose(self, obj: Dict[str, Any]) -> None:
        self.live_objects -= 1
