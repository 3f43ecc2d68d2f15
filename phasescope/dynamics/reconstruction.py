"""
Phase Space Reconstruction

Implements Takens' embedding theorem for reconstructing attractors
from scalar time series data.

References:
    Takens, F. (1981). "Detecting strange attractors in turbulence"
    Kennel, M. B., Brown, R., & Abarbanel, H. D. (1992).
    "Determining embedding dimension for phase-space reconstruction
    using a geometrical construction"
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree

from phasescope.errors import InsufficientSamples


@dataclass(frozen=True)
class PointCloud:
    """
    Delay-coordinate point cloud.

    points[i] = (s_i, s_{i+tau}, ..., s_{i+(dim-1)tau}); time[i] = i is the
    index-based time coordinate handed to visualization.
    """
    points: np.ndarray
    time: np.ndarray
    tau: int
    dim: int

    def __len__(self) -> int:
        return len(self.points)

    def to_frame(self) -> pd.DataFrame:
        columns = {'time': self.time}
        for k in range(self.dim):
            columns[f'x{k}'] = self.points[:, k]
        return pd.DataFrame(columns)


def _readonly(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


def embed_time_series(x: np.ndarray, tau: int, dim: int) -> np.ndarray:
    """
    Takens' embedding theorem: reconstruct attractor from scalar time series.

    Parameters
    ----------
    x : array, shape (n_samples,)
        Scalar time series
    tau : int
        Time delay (in samples)
    dim : int
        Embedding dimension

    Returns
    -------
    embedded : array, shape (n_samples - (dim-1)*tau, dim)
        Embedded trajectory in reconstructed phase space

    Raises
    ------
    InsufficientSamples
        If n_samples <= (dim-1)*tau

    Examples
    --------
    >>> embed_time_series(np.array([1., 2., 3., 4., 5.]), tau=1, dim=3)
    array([[1., 2., 3.],
           [2., 3., 4.],
           [3., 4., 5.]])
    """
    if tau < 1:
        raise ValueError(f"tau must be >= 1, got {tau}")
    if dim < 1:
        raise ValueError(f"dim must be >= 1, got {dim}")

    x = np.asarray(x, dtype=float).flatten()
    n = len(x) - (dim - 1) * tau
    if n <= 0:
        raise InsufficientSamples(len(x), tau, dim)

    embedded = np.zeros((n, dim))
    for i in range(dim):
        embedded[:, i] = x[i * tau : i * tau + n]
    return embedded


def takens_embedding(x: np.ndarray, tau: int, dim: int) -> PointCloud:
    """Embed and wrap as an immutable PointCloud with an index time axis."""
    points = embed_time_series(x, tau, dim)
    return PointCloud(
        points=_readonly(points),
        time=_readonly(np.arange(len(points))),
        tau=tau,
        dim=dim,
    )


def false_nearest_neighbors(
    x: np.ndarray,
    tau: int,
    max_dim: int = 10,
    ratio_threshold: float = 10.0,
) -> np.ndarray:
    """
    Fraction of false nearest neighbours for dim = 1..max_dim-1.

    A point's nearest neighbour in dimension d is "false" if adding the
    (d+1)-th coordinate separates them by more than ratio_threshold times
    their distance in d dimensions.

    Returns
    -------
    fractions : array, shape (max_dim - 1,)
        fractions[d-1] is the FNN fraction when going from d to d+1.
        NaN where the series is too short or no valid neighbour exists.
    """
    x = np.asarray(x, dtype=float).flatten()
    fractions = np.full(max(max_dim - 1, 0), np.nan)

    for dim in range(1, max_dim):
        n_points = len(x) - dim * tau
        if n_points < 10:
            break

        embedded_d = embed_time_series(x, tau, dim)[:n_points]
        extra = x[dim * tau : dim * tau + n_points]

        tree = cKDTree(embedded_d)
        distances, indices = tree.query(embedded_d, k=2)
        dist_d = distances[:, 1]
        nn = indices[:, 1]

        valid = dist_d > 0
        if not np.any(valid):
            continue

        ratio = np.abs(extra[valid] - extra[nn[valid]]) / dist_d[valid]
        fractions[dim - 1] = float(np.mean(ratio > ratio_threshold))

    return fractions


def optimal_embedding_dim(
    x: np.ndarray,
    tau: int,
    max_dim: int = 10,
    ratio_threshold: float = 10.0,
    fnn_target: float = 0.01,
) -> int:
    """
    Estimate embedding dimension using false nearest neighbors (FNN).

    Returns the first dimension whose FNN fraction drops below fnn_target,
    or the dimension with the smallest fraction if none does.
    """
    fractions = false_nearest_neighbors(x, tau, max_dim, ratio_threshold)

    for dim, fraction in enumerate(fractions, start=1):
        if np.isfinite(fraction) and fraction < fnn_target:
            return dim

    if np.all(np.isnan(fractions)):
        return 1
    return int(np.nanargmin(fractions)) + 1
