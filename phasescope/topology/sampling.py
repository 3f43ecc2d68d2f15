"""
Point Cloud Subsampling

Rips complexes grow as O(K^{d+1}) simplices, so full reconstructed
attractors (tens of thousands of points) are subsampled to a few hundred
points before persistent homology. The sample is drawn from a generator
seeded by the caller; global random state is never touched.
"""

from dataclasses import dataclass

import numpy as np

from phasescope.errors import SampleSizeExceedsPopulation
from phasescope.dynamics.reconstruction import PointCloud


@dataclass(frozen=True)
class SampledCloud:
    """Subsampled points and their indices in the original cloud (ascending)."""
    points: np.ndarray
    indices: np.ndarray
    seed: int

    def __len__(self) -> int:
        return len(self.points)


def sample_point_cloud(point_cloud, sample_size: int, seed: int) -> SampledCloud:
    """
    Uniform random subset of sample_size points, without replacement.

    Parameters
    ----------
    point_cloud : PointCloud or array, shape (n_points, n_dims)
    sample_size : int
        Number of points to keep (K <= n_points)
    seed : int
        Seed for numpy.random.default_rng

    Returns
    -------
    SampledCloud
        Indices are sorted so the sample keeps temporal order.

    Raises
    ------
    SampleSizeExceedsPopulation
        If sample_size > n_points
    """
    if isinstance(point_cloud, PointCloud):
        points = np.asarray(point_cloud.points)
    else:
        points = np.asarray(point_cloud, dtype=float)

    n = len(points)
    if sample_size < 0:
        raise ValueError(f"sample_size must be >= 0, got {sample_size}")
    if sample_size > n:
        raise SampleSizeExceedsPopulation(sample_size, n)

    rng = np.random.default_rng(seed)
    indices = np.sort(rng.choice(n, size=sample_size, replace=False))

    sampled = points[indices]
    sampled.setflags(write=False)
    indices.setflags(write=False)
    return SampledCloud(points=sampled, indices=indices, seed=seed)
