"""
Pathfinder - A* pathfinding along the road network

Builds a graph from road data and finds shortest paths between planar
positions for GPS navigation. Points closer than the merge threshold
collapse into one graph node, which is how intersections between
different roads are discovered.
"""

import heapq
import math
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple
from loguru import logger

from ..config import GraphConfig, get_config
from ..models import RoadRecord
from .geometry import GeometryUtils, PlanarPoint

Cell = Tuple[int, int]


@dataclass(frozen=True)
class Edge:
    node_id: int
    distance: float
    road_id: str


@dataclass
class GraphNode:
    id: int
    x: float
    y: float
    z: float
    edges: List[Edge] = field(default_factory=list)

    def has_edge_to(self, node_id: int) -> bool:
        return any(edge.node_id == node_id for edge in self.edges)


class NearestNode(NamedTuple):
    node_id: int
    distance: float


class Pathfinder:
    """Road graph with a uniform spatial grid for nearest-node lookup"""

    def __init__(self, config: Optional[GraphConfig] = None):
        self.config = config or get_config().graph
        self.grid_cell_size = self.config.grid_cell_size

        self.nodes: Dict[int, GraphNode] = {}
        self.spatial_grid: Dict[Cell, List[int]] = {}

        self.node_count = 0
        self.edge_count = 0

    # ------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------

    def build_graph(self, roads: Sequence[RoadRecord]) -> None:
        """
        Build the road graph, replacing any previous graph

        Nodes are placed at both ends of every road and wherever the distance
        travelled since the last placed node reaches node_interval.
        """
        logger.info("Building pathfinding graph...")
        self.nodes.clear()
        self.spatial_grid.clear()

        node_interval = self.config.node_interval

        for road in roads:
            points = road.points
            if not points or len(points) < 2:
                continue

            last_node_id = None
            dist_since_last_node = 0.0

            for i, (x, y, z) in enumerate(points):
                if i > 0:
                    px, _, pz = points[i - 1]
                    dist_since_last_node += math.hypot(x - px, z - pz)

                is_endpoint = i == 0 or i == len(points) - 1
                if is_endpoint or dist_since_last_node >= node_interval:
                    node_id = self.find_or_create_node(x, y, z)
                    if last_node_id is not None and last_node_id != node_id:
                        self.add_edge(last_node_id, node_id, dist_since_last_node, road.id)
                    last_node_id = node_id
                    dist_since_last_node = 0.0

        self.node_count = len(self.nodes)
        self.edge_count = sum(len(node.edges) for node in self.nodes.values()) // 2

        logger.info(f"Pathfinding graph built: {self.node_count} nodes, {self.edge_count} edges")

    def _cell(self, x: float, z: float) -> Cell:
        return (math.floor(x / self.grid_cell_size), math.floor(z / self.grid_cell_size))

    def find_or_create_node(self, x: float, y: float, z: float) -> int:
        """Closest existing node within merge_threshold, otherwise a new node"""
        threshold = self.config.merge_threshold
        cell_x, cell_z = self._cell(x, z)

        best_id = None
        best_dist = threshold
        for dx in (-1, 0, 1):
            for dz in (-1, 0, 1):
                for node_id in self.spatial_grid.get((cell_x + dx, cell_z + dz), ()):
                    node = self.nodes[node_id]
                    dist = math.hypot(node.x - x, node.z - z)
                    if dist < best_dist:
                        best_dist = dist
                        best_id = node_id

        if best_id is not None:
            return best_id

        node_id = len(self.nodes)
        self.nodes[node_id] = GraphNode(id=node_id, x=x, y=y, z=z)
        self.spatial_grid.setdefault((cell_x, cell_z), []).append(node_id)
        return node_id

    def add_edge(self, node_a: int, node_b: int, distance: float, road_id: str) -> None:
        """Add a bidirectional edge; an existing edge between the pair is kept"""
        a = self.nodes[node_a]
        b = self.nodes[node_b]
        if a.has_edge_to(node_b):
            return
        a.edges.append(Edge(node_id=node_b, distance=distance, road_id=road_id))
        b.edges.append(Edge(node_id=node_a, distance=distance, road_id=road_id))

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def find_nearest_node(self, x: float, z: float) -> Optional[NearestNode]:
        """Expanding ring search over grid cells, capped at max_search_radius"""
        nearest = None
        nearest_dist = math.inf
        cell_x, cell_z = self._cell(x, z)

        for radius in range(self.config.max_search_radius + 1):
            for dx in range(-radius, radius + 1):
                for dz in range(-radius, radius + 1):
                    # Only the ring at this radius; inner cells were already visited
                    if radius > 0 and abs(dx) < radius and abs(dz) < radius:
                        continue
                    for node_id in self.spatial_grid.get((cell_x + dx, cell_z + dz), ()):
                        node = self.nodes[node_id]
                        dist = math.hypot(node.x - x, node.z - z)
                        if dist < nearest_dist:
                            nearest_dist = dist
                            nearest = NearestNode(node_id, dist)

            if nearest is not None and nearest_dist < self.grid_cell_size * (radius + 1):
                break

        return nearest

    def find_path(self, start_x: float, start_z: float, end_x: float, end_z: float) -> Optional[List[PlanarPoint]]:
        """
        Find a route between two world positions using A*

        Returns:
            Simplified list of (x, z) points starting at the start position and
            ending at the end position, or None if no route exists
        """
        start_node = self.find_nearest_node(start_x, start_z)
        end_node = self.find_nearest_node(end_x, end_z)

        if start_node is None or end_node is None:
            logger.warning("Pathfinder: Could not find nodes near start or end position")
            return None

        node_sequence = self._astar(start_node.node_id, end_node.node_id)
        if node_sequence is None:
            logger.warning(f"Pathfinder: No path found between nodes "
                           f"{start_node.node_id} and {end_node.node_id}")
            return None

        path = [(start_x, start_z)]
        path.extend((self.nodes[node_id].x, self.nodes[node_id].z) for node_id in node_sequence)
        path.append((end_x, end_z))
        return GeometryUtils.simplify_path(path, self.config.simplify_tolerance)

    def _astar(self, start: int, goal: int) -> Optional[List[int]]:
        counter = 0
        open_heap = [(self.heuristic(start, goal), counter, start)]
        g_score = {start: 0.0}
        came_from: Dict[int, int] = {}
        closed = set()

        while open_heap:
            _, _, current = heapq.heappop(open_heap)
            if current == goal:
                return self._reconstruct(came_from, current)
            if current in closed:
                continue
            closed.add(current)

            current_g = g_score[current]
            for edge in self.nodes[current].edges:
                if edge.node_id in closed:
                    continue
                tentative_g = current_g + edge.distance
                if tentative_g < g_score.get(edge.node_id, math.inf):
                    came_from[edge.node_id] = current
                    g_score[edge.node_id] = tentative_g
                    counter += 1
                    heapq.heappush(
                        open_heap,
                        (tentative_g + self.heuristic(edge.node_id, goal), counter, edge.node_id)
                    )

        return None

    @staticmethod
    def _reconstruct(came_from: Dict[int, int], current: int) -> List[int]:
        sequence = [current]
        while current in came_from:
            current = came_from[current]
            sequence.append(current)
        sequence.reverse()
        return sequence

    def heuristic(self, node_a: int, node_b: int) -> float:
        """Euclidean distance in the x/z plane"""
        a = self.nodes[node_a]
        b = self.nodes[node_b]
        return math.hypot(a.x - b.x, a.z - b.z)

    @staticmethod
    def get_path_distance(path: Optional[Sequence[PlanarPoint]]) -> float:
        """Total path distance in meters"""
        if not path:
            return 0.0
        return GeometryUtils.path_length(path)

    def is_ready(self) -> bool:
        return len(self.nodes) > 0

    def get_stats(self) -> Dict[str, int]:
        return {
            "nodes": self.node_count,
            "edges": self.edge_count,
            "gridCells": len(self.spatial_grid),
        }
