"""
Planar geometry helpers for routes (x/z plane, meters)
"""

import math
from typing import List, Sequence, Tuple

PlanarPoint = Tuple[float, float]


class GeometryUtils:
    """Utility functions for geometric operations"""

    @staticmethod
    def distance(x1: float, z1: float, x2: float, z2: float) -> float:
        return math.hypot(x2 - x1, z2 - z1)

    @staticmethod
    def point_to_segment_distance(
        px: float, pz: float,
        x1: float, z1: float,
        x2: float, z2: float
    ) -> float:
        """Distance from point (px, pz) to the segment (x1, z1)-(x2, z2)"""
        dx = x2 - x1
        dz = z2 - z1
        length_sq = dx * dx + dz * dz

        if length_sq == 0:
            return math.hypot(px - x1, pz - z1)

        t = max(0.0, min(1.0, ((px - x1) * dx + (pz - z1) * dz) / length_sq))
        nearest_x = x1 + t * dx
        nearest_z = z1 + t * dz
        return math.hypot(px - nearest_x, pz - nearest_z)

    @staticmethod
    def simplify_path(path: Sequence[PlanarPoint], tolerance: float) -> List[PlanarPoint]:
        """
        Single-pass simplification

        A point is dropped when it lies within `tolerance` of the segment
        joining the last kept point and the following point. Endpoints are
        always kept.
        """
        if len(path) <= 2:
            return list(path)

        simplified = [path[0]]
        for i in range(1, len(path) - 1):
            prev = simplified[-1]
            curr = path[i]
            nxt = path[i + 1]
            deviation = GeometryUtils.point_to_segment_distance(
                curr[0], curr[1], prev[0], prev[1], nxt[0], nxt[1]
            )
            if deviation >= tolerance:
                simplified.append(curr)

        simplified.append(path[-1])
        return simplified

    @staticmethod
    def path_length(path: Sequence[PlanarPoint]) -> float:
        """Total planar length of a polyline"""
        if not path or len(path) < 2:
            return 0.0
        return sum(
            math.hypot(x2 - x1, z2 - z1)
            for (x1, z1), (x2, z2) in zip(path, path[1:])
        )
