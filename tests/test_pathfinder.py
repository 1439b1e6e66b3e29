import math

import pytest

from roadnet.ingest.pipeline import IngestionPipeline
from roadnet.navigation import GeometryUtils, Pathfinder


@pytest.fixture
def pathfinder(config):
    return Pathfinder(config.graph)


def straight_line(x0, z0, x1, z1, step=10.0):
    length = math.hypot(x1 - x0, z1 - z0)
    count = int(round(length / step))
    return [(x0 + (x1 - x0) * i / count, z0 + (z1 - z0) * i / count) for i in range(count + 1)]


def test_empty_graph(pathfinder):
    pathfinder.build_graph([])
    assert not pathfinder.is_ready()
    assert pathfinder.find_nearest_node(0, 0) is None
    assert pathfinder.find_path(0, 0, 100, 100) is None


def test_nodes_every_interval(pathfinder, road_factory):
    pathfinder.build_graph([road_factory("r1", straight_line(0, 0, 200, 0))])

    positions = sorted((node.x, node.z) for node in pathfinder.nodes.values())
    assert positions == [(0.0, 0.0), (50.0, 0.0), (100.0, 0.0), (150.0, 0.0), (200.0, 0.0)]
    assert pathfinder.get_stats() == {"nodes": 5, "edges": 4, "gridCells": 3}
    for node in pathfinder.nodes.values():
        for edge in node.edges:
            assert edge.distance == pytest.approx(50.0)
            assert edge.road_id == "r1"


def test_shared_endpoint_from_ingested_ways(config, osm_xml):
    # way 200 starts ~2.2 m from where way 100 ends
    text = osm_xml(
        [
            (1, 7.5, 124.5, {}),
            (2, 7.5, 124.5004, {}),
            (3, 7.5, 124.50042, {}),
            (4, 7.5003, 124.50042, {}),
        ],
        [
            (100, [1, 2], {"highway": "primary"}),
            (200, [3, 4], {"highway": "secondary"}),
        ],
    )
    roads = IngestionPipeline(config, workers=1).run(text).roads_document.roads
    pathfinder = Pathfinder(config.graph)
    pathfinder.build_graph(roads)

    assert len(pathfinder.nodes) == 3
    primary_end = pathfinder.find_nearest_node(*roads[0].points[-1][::2]).node_id
    secondary_start = pathfinder.find_nearest_node(*roads[1].points[0][::2]).node_id
    assert primary_end == secondary_start

    shared = pathfinder.nodes[primary_end]
    neighbours = {edge.node_id: edge.road_id for edge in shared.edges}
    primary_start = pathfinder.find_nearest_node(*roads[0].points[0][::2]).node_id
    secondary_end = pathfinder.find_nearest_node(*roads[1].points[-1][::2]).node_id
    assert neighbours == {primary_start: "100", secondary_end: "200"}


@pytest.mark.parametrize("reverse", [False, True])
def test_close_endpoints_merge_regardless_of_order(pathfinder, road_factory, reverse):
    roads = [
        road_factory("a", [(0, 0), (40, 0)]),
        road_factory("b", [(43, 3), (43, 40)]),  # starts ~4.2 m from a's end
        road_factory("c", [(40, 10), (0, 10)]),  # 10 m away, stays separate
    ]
    pathfinder.build_graph(list(reversed(roads)) if reverse else roads)

    assert len(pathfinder.nodes) == 5
    assert pathfinder.find_nearest_node(40, 0).node_id == pathfinder.find_nearest_node(43, 3).node_id
    assert pathfinder.find_nearest_node(40, 0).node_id != pathfinder.find_nearest_node(40, 10).node_id


def test_duplicate_edges_are_suppressed(pathfinder, road_factory):
    pathfinder.build_graph([
        road_factory("a", [(0, 0), (30, 0)]),
        road_factory("b", [(0, 0), (30, 0)]),
        road_factory("c", [(30, 0), (0, 0)]),
    ])
    assert len(pathfinder.nodes) == 2
    assert pathfinder.edge_count == 1
    for node in pathfinder.nodes.values():
        assert len(node.edges) == 1
        assert node.edges[0].road_id == "a"


def test_route_is_simplified_to_corners(pathfinder, road_factory):
    pathfinder.build_graph([
        road_factory("east", straight_line(0, 0, 100, 0)),
        road_factory("north", straight_line(100, 0, 100, 100)),
    ])
    path = pathfinder.find_path(0, 0, 100, 100)
    assert path == [(0.0, 0.0), (100.0, 0.0), (100.0, 100.0)]
    assert pathfinder.get_path_distance(path) == pytest.approx(200.0)


def test_shortest_of_two_routes(pathfinder, road_factory):
    pathfinder.build_graph([
        road_factory("short", [(0, 0), (100, 0), (100, 100)]),
        road_factory("long", [(0, 0), (0, 300), (100, 300), (100, 100)]),
    ])
    path = pathfinder.find_path(0, 0, 100, 100)
    assert (100.0, 0.0) in path
    assert (0.0, 300.0) not in path


def test_path_validity_on_grid(pathfinder, road_factory):
    roads = []
    for i in range(4):
        roads.append(road_factory(f"h{i}", straight_line(0, i * 200, 600, i * 200)))
        roads.append(road_factory(f"v{i}", straight_line(i * 200, 0, i * 200, 600)))
    pathfinder.build_graph(roads)
    total_weight = sum(e.distance for n in pathfinder.nodes.values() for e in n.edges) / 2

    for start, end in [((0, 0), (600, 600)), ((200, 0), (0, 400)), ((600, 0), (400, 600))]:
        path = pathfinder.find_path(*start, *end)
        assert path is not None
        assert path[0] == start and path[-1] == end
        length = pathfinder.get_path_distance(path)
        straight = math.hypot(end[0] - start[0], end[1] - start[1])
        manhattan = abs(end[0] - start[0]) + abs(end[1] - start[1])
        assert straight - 1e-6 <= length <= manhattan + 1e-6
        assert length <= total_weight


def test_query_positions_snap_to_nearest_nodes(pathfinder, road_factory):
    pathfinder.build_graph([road_factory("r", straight_line(0, 0, 300, 0))])
    path = pathfinder.find_path(-20, 30, 320, -30)
    assert path[0] == (-20, 30)
    assert path[-1] == (320, -30)
    assert (0.0, 0.0) in path and (300.0, 0.0) in path


def test_disconnected_graph_has_no_path(pathfinder, road_factory):
    pathfinder.build_graph([
        road_factory("west", [(0, 0), (40, 0)]),
        road_factory("east", [(1000, 0), (1040, 0)]),
    ])
    assert pathfinder.is_ready()
    assert pathfinder.find_path(0, 0, 1040, 0) is None


def test_query_far_outside_coverage(pathfinder, road_factory):
    pathfinder.build_graph([road_factory("r", [(0, 0), (40, 0)])])
    assert pathfinder.find_nearest_node(50_000, 50_000) is None
    assert pathfinder.find_path(0, 0, 50_000, 50_000) is None


def test_nearest_node_across_rings(pathfinder, road_factory):
    pathfinder.build_graph([road_factory("r", [(0, 0), (40, 0)])])
    nearest = pathfinder.find_nearest_node(850, 0)
    assert nearest.node_id == pathfinder.find_nearest_node(40, 0).node_id
    assert nearest.distance == pytest.approx(810.0)


def test_rebuild_replaces_graph(pathfinder, road_factory):
    pathfinder.build_graph([road_factory("a", straight_line(0, 0, 200, 0))])
    pathfinder.build_graph([road_factory("b", [(0, 0), (30, 0)])])
    assert len(pathfinder.nodes) == 2


class TestSimplify:
    def test_collinear_points_removed(self):
        path = [(0, 0), (10, 0), (20, 0), (30, 0)]
        assert GeometryUtils.simplify_path(path, 5.0) == [(0, 0), (30, 0)]

    def test_small_deviation_removed_large_kept(self):
        assert GeometryUtils.simplify_path([(0, 0), (50, 4.9), (100, 0)], 5.0) == [(0, 0), (100, 0)]
        assert GeometryUtils.simplify_path([(0, 0), (50, 5.1), (100, 0)], 5.0) == [(0, 0), (50, 5.1), (100, 0)]

    def test_short_paths_untouched(self):
        assert GeometryUtils.simplify_path([(1, 2)], 5.0) == [(1, 2)]
        assert GeometryUtils.simplify_path([(1, 2), (3, 4)], 5.0) == [(1, 2), (3, 4)]

    def test_point_to_segment_distance(self):
        assert GeometryUtils.point_to_segment_distance(5, 5, 0, 0, 10, 0) == pytest.approx(5.0)
        assert GeometryUtils.point_to_segment_distance(15, 0, 0, 0, 10, 0) == pytest.approx(5.0)
        assert GeometryUtils.point_to_segment_distance(3, 4, 0, 0, 0, 0) == pytest.approx(5.0)
