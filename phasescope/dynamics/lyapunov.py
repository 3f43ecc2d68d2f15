"""
Lyapunov Exponent Estimation

Computes the maximal Lyapunov exponent, the rate of separation of
initially close trajectories:
    - lambda > 0: chaotic (exponential divergence)
    - lambda ~ 0: periodic/quasiperiodic
    - lambda < 0: stable fixed point (convergence)

For every reference point the neighbours within `radius` (outside a
Theiler window) are followed forward in time. The divergence curve

    S(k) = < log( mean_j || p_{i+k} - p_{j+k} || ) >_i

is averaged over reference points and over a range of embedding
dimensions. The exponent is the slope of S(k) over a caller-chosen
linear region; no breakpoint detection is attempted.

References:
    Kantz, H. (1994). "A robust method to estimate the maximal Lyapunov
    exponent of a time series"
    Rosenstein, M. T., Collins, J. J., & De Luca, C. J. (1993).
    "A practical method for calculating largest Lyapunov exponents
    from small data sets."
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree
from scipy.stats import linregress

from phasescope.errors import InsufficientNeighbors, check_cancelled
from .reconstruction import PointCloud, embed_time_series


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DivergenceCurve:
    """Mean log-divergence S(k) for k = 0..max_time_steps."""
    time_steps: np.ndarray
    log_divergence: np.ndarray   # NaN where no reference point qualified
    n_references: np.ndarray     # reference points used per horizon (all dims)
    embedding_dims: Tuple[int, ...]
    radius: float
    theiler_window: int

    @property
    def max_time_steps(self) -> int:
        return int(self.time_steps[-1])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'time_step': self.time_steps,
            'log_divergence': self.log_divergence,
            'n_references': self.n_references,
        })


@dataclass(frozen=True)
class LyapunovEstimate:
    """Slope of the divergence curve over a fixed horizon window."""
    exponent: float          # per unit time (slope / sampling_period)
    slope_per_step: float    # per sampling interval
    intercept: float
    r_squared: float
    stderr: float            # of exponent, per unit time
    window: Tuple[int, int]
    sampling_period: float
    curve: DivergenceCurve

    @property
    def is_chaotic(self) -> bool:
        return self.exponent > 0


def _reference_indices(n_valid: int, n_reference_points: Optional[int]) -> np.ndarray:
    """All indices, or an evenly spaced deterministic subset."""
    if n_reference_points is None or n_reference_points >= n_valid:
        return np.arange(n_valid)
    return np.unique(np.linspace(0, n_valid - 1, n_reference_points).astype(int))


def _accumulate_divergence(
    points: np.ndarray,
    radius: float,
    max_time_steps: int,
    theiler_window: int,
    n_reference_points: Optional[int] = None,
    cancel=None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sum of per-reference log mean distances and reference counts per horizon.

    Only points that can be followed for max_time_steps steps take part,
    as references or as neighbours.
    """
    steps = np.arange(max_time_steps + 1)
    sums = np.zeros(max_time_steps + 1)
    counts = np.zeros(max_time_steps + 1, dtype=int)

    n_valid = len(points) - max_time_steps
    if n_valid <= 1:
        return sums, counts

    tree = cKDTree(points[:n_valid])
    refs = _reference_indices(n_valid, n_reference_points)
    neighborhoods = tree.query_ball_point(points[refs], r=radius)

    for i, neighbors in zip(refs, neighborhoods):
        check_cancelled(cancel, 'Lyapunov neighbour search')

        neighbors = np.asarray(neighbors, dtype=int)
        # Theiler window: drop temporally correlated neighbours (and i itself)
        neighbors = neighbors[np.abs(neighbors - i) > theiler_window]
        if len(neighbors) == 0:
            continue

        # (n_neighbors, n_steps, dim) - (n_steps, dim)
        deltas = points[neighbors[:, None] + steps[None, :]] - points[i + steps]
        mean_dist = np.linalg.norm(deltas, axis=2).mean(axis=0)

        positive = mean_dist > 0
        sums[positive] += np.log(mean_dist[positive])
        counts[positive] += 1

    return sums, counts


def _build_curve(
    per_dim: list,
    dims: Tuple[int, ...],
    radius: float,
    max_time_steps: int,
    theiler_window: int,
) -> DivergenceCurve:
    """Average per-dimension curves; a dimension counts only where it has data."""
    curve_sum = np.zeros(max_time_steps + 1)
    n_dims = np.zeros(max_time_steps + 1, dtype=int)
    n_refs = np.zeros(max_time_steps + 1, dtype=int)

    for sums, counts in per_dim:
        ok = counts > 0
        curve_sum[ok] += sums[ok] / counts[ok]
        n_dims[ok] += 1
        n_refs += counts

    if not np.any(n_refs > 0):
        raise InsufficientNeighbors(
            f"No reference point has a neighbour within radius={radius} "
            f"outside the Theiler window ({theiler_window}) for dims {list(dims)}",
            radius=radius,
        )

    log_divergence = np.full(max_time_steps + 1, np.nan)
    ok = n_dims > 0
    log_divergence[ok] = curve_sum[ok] / n_dims[ok]

    return DivergenceCurve(
        time_steps=np.arange(max_time_steps + 1),
        log_divergence=log_divergence,
        n_references=n_refs,
        embedding_dims=tuple(dims),
        radius=radius,
        theiler_window=theiler_window,
    )


def divergence_curve(
    x: np.ndarray,
    tau: int,
    min_dim: int,
    max_dim: int,
    radius: float,
    max_time_steps: int,
    theiler_window: int,
    n_reference_points: Optional[int] = None,
    cancel=None,
) -> DivergenceCurve:
    """
    Divergence curve averaged over embedding dimensions min_dim..max_dim.

    Parameters
    ----------
    x : array
        Time series (1D)
    tau : int
        Time delay for embedding
    min_dim, max_dim : int
        Inclusive range of embedding dimensions
    radius : float
        Neighbourhood radius in embedding space
    max_time_steps : int
        Largest horizon k
    theiler_window : int
        Neighbours with |i - j| <= theiler_window are ignored
    n_reference_points : int, optional
        Evenly spaced subset of reference points (None = all)
    cancel : threading.Event, optional

    Returns
    -------
    DivergenceCurve

    Raises
    ------
    InsufficientNeighbors
        If no reference point qualifies at any horizon in any dimension
    """
    if min_dim < 1 or max_dim < min_dim:
        raise ValueError(f"Invalid dimension range [{min_dim}, {max_dim}]")
    if radius <= 0:
        raise ValueError(f"radius must be > 0, got {radius}")
    if max_time_steps < 1:
        raise ValueError(f"max_time_steps must be >= 1, got {max_time_steps}")
    if theiler_window < 0:
        raise ValueError(f"theiler_window must be >= 0, got {theiler_window}")

    dims = tuple(range(min_dim, max_dim + 1))
    per_dim = []
    for dim in dims:
        points = embed_time_series(x, tau, dim)
        sums, counts = _accumulate_divergence(
            points, radius, max_time_steps, theiler_window,
            n_reference_points=n_reference_points, cancel=cancel,
        )
        logger.debug(f"dim={dim}: {int(counts.max())} reference points with neighbours")
        per_dim.append((sums, counts))

    return _build_curve(per_dim, dims, radius, max_time_steps, theiler_window)


def divergence_curve_from_cloud(
    cloud,
    radius: float,
    max_time_steps: int,
    theiler_window: int,
    n_reference_points: Optional[int] = None,
    cancel=None,
) -> DivergenceCurve:
    """Divergence curve for a single, already embedded trajectory."""
    if isinstance(cloud, PointCloud):
        points, dims = np.asarray(cloud.points), (cloud.dim,)
    else:
        points = np.asarray(cloud, dtype=float)
        if points.ndim == 1:
            points = points[:, None]
        dims = (points.shape[1],)

    if radius <= 0:
        raise ValueError(f"radius must be > 0, got {radius}")
    if max_time_steps < 1:
        raise ValueError(f"max_time_steps must be >= 1, got {max_time_steps}")
    if theiler_window < 0:
        raise ValueError(f"theiler_window must be >= 0, got {theiler_window}")

    sums, counts = _accumulate_divergence(
        points, radius, max_time_steps, theiler_window,
        n_reference_points=n_reference_points, cancel=cancel,
    )
    return _build_curve([(sums, counts)], dims, radius, max_time_steps, theiler_window)


def fit_lyapunov(
    curve: DivergenceCurve,
    window: Tuple[int, int],
    sampling_period: float = 1.0,
) -> LyapunovEstimate:
    """
    Least-squares slope of the divergence curve over [k_lo, k_hi].

    Parameters
    ----------
    curve : DivergenceCurve
    window : (int, int)
        Inclusive horizon range where the curve is linear
    sampling_period : float
        dt; the per-step slope is divided by it

    Returns
    -------
    LyapunovEstimate
    """
    k_lo, k_hi = (int(k) for k in window)
    if not 0 <= k_lo < k_hi <= curve.max_time_steps:
        raise ValueError(
            f"Regression window {window} must satisfy 0 <= k_lo < k_hi <= {curve.max_time_steps}"
        )
    if sampling_period <= 0:
        raise ValueError(f"sampling_period must be > 0, got {sampling_period}")

    k = curve.time_steps
    mask = (k >= k_lo) & (k <= k_hi) & np.isfinite(curve.log_divergence)
    if mask.sum() < 2:
        raise InsufficientNeighbors(
            f"Fewer than two finite divergence values in window {window}",
            radius=curve.radius,
        )

    fit = linregress(k[mask].astype(float), curve.log_divergence[mask])

    return LyapunovEstimate(
        exponent=float(fit.slope / sampling_period),
        slope_per_step=float(fit.slope),
        intercept=float(fit.intercept),
        r_squared=float(fit.rvalue ** 2),
        stderr=float(fit.stderr / sampling_period),
        window=(k_lo, k_hi),
        sampling_period=float(sampling_period),
        curve=curve,
    )


def max_lyapunov(
    x: np.ndarray,
    tau: int,
    min_dim: int,
    max_dim: int,
    radius: float,
    max_time_steps: int,
    theiler_window: int,
    window: Tuple[int, int],
    sampling_period: float = 1.0,
    n_reference_points: Optional[int] = None,
    cancel=None,
) -> LyapunovEstimate:
    """
    Estimate the maximal Lyapunov exponent of a scalar series.

    Divergence curve over the dimension range, then a linear fit over
    `window`.

    Examples
    --------
    >>> r = np.empty(3000); r[0] = 0.4
    >>> for n in range(len(r) - 1):
    ...     r[n + 1] = 4.0 * r[n] * (1.0 - r[n])
    >>> est = max_lyapunov(r, tau=1, min_dim=2, max_dim=3, radius=0.02,
    ...                    max_time_steps=10, theiler_window=5, window=(0, 4))
    >>> est.exponent > 0
    True
    """
    curve = divergence_curve(
        x, tau, min_dim, max_dim, radius, max_time_steps, theiler_window,
        n_reference_points=n_reference_points, cancel=cancel,
    )
    estimate = fit_lyapunov(curve, window, sampling_period)
    logger.debug(
        f"lambda_max={estimate.exponent:.4f} (r2={estimate.r_squared:.3f}, window={window})"
    )
    return estimate
