"""
Elevation interpolation using inverse distance weighting (IDW)

Distances are measured directly in degrees. A query that lands on a known
sample returns that sample's elevation unchanged; otherwise every sample
within max_distance contributes with weight 1/d^2. With nothing in range
the documented fallback is sea level (0.0).
"""

from typing import Iterable, Optional, Sequence, Union

import numpy as np

from .models import ElevationSample

DEFAULT_MAX_DISTANCE_DEG = 0.1
EXACT_MATCH_DEG = 0.0001
SEA_LEVEL = 0.0


class SampleSet:
    """Elevation samples packed into numpy arrays, built once per run"""

    __slots__ = ("lats", "lons", "eles")

    def __init__(self, lats: np.ndarray, lons: np.ndarray, eles: np.ndarray):
        self.lats = lats
        self.lons = lons
        self.eles = eles

    @classmethod
    def from_samples(cls, samples: Iterable[ElevationSample]) -> "SampleSet":
        samples = list(samples)
        return cls(
            np.fromiter((s.lat for s in samples), dtype=np.float64, count=len(samples)),
            np.fromiter((s.lon for s in samples), dtype=np.float64, count=len(samples)),
            np.fromiter((s.ele for s in samples), dtype=np.float64, count=len(samples)),
        )

    def __len__(self) -> int:
        return int(self.eles.size)


Samples = Union[SampleSet, Sequence[ElevationSample]]


def _as_sample_set(samples: Samples) -> SampleSet:
    if isinstance(samples, SampleSet):
        return samples
    return SampleSet.from_samples(samples)


def estimate_elevation(
    lat: float,
    lon: float,
    samples: Samples,
    max_distance: float = DEFAULT_MAX_DISTANCE_DEG,
    exact_match: float = EXACT_MATCH_DEG,
) -> Optional[float]:
    """
    Estimate elevation at (lat, lon) from known samples

    Args:
        lat: Query latitude
        lon: Query longitude
        samples: Known elevation samples (never modified)
        max_distance: Search radius in degrees
        exact_match: Radius in degrees within which a sample is used as-is

    Returns:
        Elevation in meters, or None if no sample lies within max_distance
    """
    sample_set = _as_sample_set(samples)
    if len(sample_set) == 0:
        return None

    distances = np.hypot(lat - sample_set.lats, lon - sample_set.lons)

    exact = np.flatnonzero(distances < exact_match)
    if exact.size:
        return float(sample_set.eles[exact[0]])

    in_range = distances < max_distance
    if not in_range.any():
        return None

    weights = 1.0 / np.square(distances[in_range])
    return float(np.sum(weights * sample_set.eles[in_range]) / np.sum(weights))


def interpolate_elevation(
    lat: float,
    lon: float,
    samples: Samples,
    max_distance: float = DEFAULT_MAX_DISTANCE_DEG,
    exact_match: float = EXACT_MATCH_DEG,
) -> float:
    """Same as estimate_elevation, falling back to sea level when nothing is in range"""
    elevation = estimate_elevation(lat, lon, samples, max_distance, exact_match)
    return SEA_LEVEL if elevation is None else elevation
