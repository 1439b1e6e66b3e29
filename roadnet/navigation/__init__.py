"""
Route planning over the processed road network
"""

from .geometry import GeometryUtils
from .pathfinder import Pathfinder, GraphNode, Edge, NearestNode

__all__ = [
    "GeometryUtils",
    "Pathfinder",
    "GraphNode",
    "Edge",
    "NearestNode",
]
