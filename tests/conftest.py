from typing import Dict, List, Optional, Sequence, Tuple
from xml.sax.saxutils import quoteattr

import pytest

from roadnet.config import RoadnetConfig
from roadnet.models import POIRecord, RoadRecord


NodeSpec = Tuple[int, float, float, Dict[str, str]]
WaySpec = Tuple[int, Sequence[int], Dict[str, str]]


def _tags_xml(tags: Dict[str, str]) -> List[str]:
    return [f"    <tag k={quoteattr(k)} v={quoteattr(v)}/>" for k, v in tags.items()]


def build_osm_xml(nodes: Sequence[NodeSpec], ways: Sequence[WaySpec] = ()) -> str:
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', '<osm version="0.6" generator="tests">']
    for node_id, lat, lon, tags in nodes:
        if tags:
            lines.append(f'  <node id="{node_id}" visible="true" lat="{lat}" lon="{lon}">')
            lines.extend(_tags_xml(tags))
            lines.append("  </node>")
        else:
            lines.append(f'  <node id="{node_id}" visible="true" lat="{lat}" lon="{lon}"/>')
    for way_id, refs, tags in ways:
        lines.append(f'  <way id="{way_id}" visible="true">')
        lines.extend(f'    <nd ref="{ref}"/>' for ref in refs)
        lines.extend(_tags_xml(tags))
        lines.append("  </way>")
    lines.append("</osm>")
    return "\n".join(lines)


def make_road(road_id: str, points: Sequence[Tuple[float, float]], road_type: str = "primary",
              elevation: float = 0.0) -> RoadRecord:
    """Road from planar (x, z) points"""
    return RoadRecord(
        id=road_id,
        type=road_type,
        name=None,
        width=10.0,
        speed_limit=60,
        lanes=2,
        surface="asphalt",
        points=[(float(x), elevation, float(z)) for x, z in points],
    )


def make_poi(poi_id: str, x: float, z: float, poi_type: str = "town", name: Optional[str] = None) -> POIRecord:
    return POIRecord(id=poi_id, type=poi_type, name=name, x=x, y=0.0, z=z)


@pytest.fixture
def config() -> RoadnetConfig:
    return RoadnetConfig()


@pytest.fixture
def osm_xml():
    return build_osm_xml


@pytest.fixture
def road_factory():
    return make_road


@pytest.fixture
def poi_factory():
    return make_poi


@pytest.fixture
def sample_osm(osm_xml) -> str:
    """
    Small network around the origin (7.5, 124.5):
      way 100: primary, nodes 1-2-3, node 1 carries ele=120
      way 200: secondary sharing node 3, named by ref only
      way 300: footway (not a road)
      way 400: residential referencing one real node and one missing node
    plus a fuel station without a name, a town and an unrelated node.
    """
    nodes = [
        (1, 7.5, 124.5, {"ele": "120", "highway": "traffic_signals"}),
        (2, 7.5, 124.501, {}),
        (3, 7.5, 124.502, {"ele": "80 m"}),
        (4, 7.501, 124.502, {}),
        (5, 7.502, 124.502, {}),
        (6, 7.5005, 124.5005, {"amenity": "fuel"}),
        (7, 7.51, 124.51, {"place": "town", "name": "Valencia", "population": "1000"}),
        (-8, 9.0, 126.0, {"amenity": "bench"}),
    ]
    ways = [
        (100, [1, 2, 3], {"highway": "primary", "name": "National Highway", "maxspeed": "80", "lanes": "4"}),
        (200, [3, 4, 5], {"highway": "secondary", "ref": "R-7", "surface": "concrete"}),
        (300, [1, 2], {"highway": "footway"}),
        (400, [5, 999], {"highway": "residential"}),
    ]
    return osm_xml(nodes, ways)
