"""
Average Mutual Information Delay Selection

The mutual information between s(t) and s(t+tau) quantifies the
information shared between the signal and its delayed copy. The first
local minimum marks the delay where the delayed coordinate is as
independent as it gets while still dynamically related.

Binning rule (held constant for reproducibility):
    - one n_bins x n_bins grid for every lag
    - both axes share the edges linspace(min(s), max(s), n_bins + 1)
    - n_bins defaults to Sturges' rule, ceil(log2(N)) + 1, from the full
      signal length N

Sharing the edges between axes makes AMI(tau) identical for a signal and
its time reverse (the joint histogram is merely transposed).

On a coarse grid the curve is not smooth: binning jitter can produce a
shallow dip at a small lag well before the quarter-period minimum of a
periodic signal, and the first-minimum rule takes that dip. Callers who
want the smoother minimum should raise n_bins or smooth the curve.

References:
    Fraser, A. M., & Swinney, H. L. (1986). "Independent coordinates
    for strange attractors from mutual information"
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from scipy.stats import entropy

from phasescope.errors import InsufficientSamples, NoLocalMinimumFound, check_cancelled


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AMICurve:
    """AMI(tau) for tau = 0..lag_max."""
    lags: np.ndarray
    ami: np.ndarray
    n_bins: int

    @property
    def lag_max(self) -> int:
        return int(self.lags[-1])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'lag': self.lags, 'ami': self.ami})


@dataclass(frozen=True)
class LagEstimate:
    """Selected delay plus the curve it was read from."""
    tau: int
    curve: AMICurve


def sturges_bins(n_samples: int) -> int:
    """Sturges' rule: ceil(log2(n)) + 1."""
    if n_samples < 1:
        raise ValueError(f"n_samples must be >= 1, got {n_samples}")
    return int(math.ceil(math.log2(n_samples))) + 1


def _bin_edges(x: np.ndarray, n_bins: int) -> np.ndarray:
    lo, hi = float(np.min(x)), float(np.max(x))
    if hi <= lo:
        # Constant signal: one occupied cell, zero information at every lag
        lo, hi = lo - 0.5, hi + 0.5
    return np.linspace(lo, hi, n_bins + 1)


def lagged_mutual_information(
    x: np.ndarray,
    tau: int,
    edges: np.ndarray,
    base: Optional[float] = None,
) -> float:
    """
    Mutual information I(s_i; s_{i+tau}) on a fixed histogram grid.

    I(X;Y) = H(X) + H(Y) - H(X,Y)

    Parameters
    ----------
    x : array
        Time series
    tau : int
        Delay (0 gives the entropy of the binned signal)
    edges : array
        Shared bin edges for both axes
    base : float, optional
        Logarithm base (None = nats)

    Returns
    -------
    mi : float
        Mutual information (>= 0)
    """
    n = len(x) - tau
    joint = np.histogram2d(x[:n], x[tau:tau + n], bins=[edges, edges])[0]
    joint = joint / joint.sum()

    px = joint.sum(axis=1)
    py = joint.sum(axis=0)

    # Only include non-zero probabilities
    mi_val = (
        entropy(px[px > 0], base=base)
        + entropy(py[py > 0], base=base)
        - entropy(joint[joint > 0], base=base)
    )
    return max(0.0, float(mi_val))


def average_mutual_information(
    x: np.ndarray,
    lag_max: int,
    n_bins: Optional[int] = None,
    base: Optional[float] = None,
    cancel=None,
) -> AMICurve:
    """
    Compute AMI(tau) for tau = 0..lag_max.

    Parameters
    ----------
    x : array
        Time series (1D)
    lag_max : int
        Largest delay to evaluate (must be < len(x))
    n_bins : int, optional
        Bins per axis (None = Sturges' rule on len(x))
    base : float, optional
        Logarithm base (None = nats)
    cancel : threading.Event, optional
        Checked once per lag

    Returns
    -------
    AMICurve
    """
    x = np.asarray(x, dtype=float).flatten()
    n = len(x)

    if lag_max < 2:
        raise ValueError(f"lag_max must be >= 2, got {lag_max}")
    if lag_max >= n:
        # The pairs (s_i, s_{i+lag_max}) are a 2-D embedding with delay lag_max
        raise InsufficientSamples(n, tau=lag_max, dim=2)
    if not np.all(np.isfinite(x)):
        raise ValueError("Time series contains NaN or infinite values")

    if n_bins is None:
        n_bins = sturges_bins(n)

    edges = _bin_edges(x, n_bins)

    ami = np.empty(lag_max + 1)
    for tau in range(lag_max + 1):
        check_cancelled(cancel, 'mutual information scan')
        ami[tau] = lagged_mutual_information(x, tau, edges, base=base)

    return AMICurve(lags=np.arange(lag_max + 1), ami=ami, n_bins=n_bins)


def first_local_minimum(ami: np.ndarray) -> int:
    """
    First tau >= 1 with AMI(tau) < AMI(tau-1) and AMI(tau) <= AMI(tau+1).

    Raises
    ------
    NoLocalMinimumFound
        If no such tau exists in [1, len(ami) - 2]
    """
    ami = np.asarray(ami, dtype=float)
    lag_max = len(ami) - 1

    for tau in range(1, lag_max):
        if ami[tau] < ami[tau - 1] and ami[tau] <= ami[tau + 1]:
            return tau

    raise NoLocalMinimumFound(lag_max)


def estimate_time_lag(
    x: np.ndarray,
    lag_max: int,
    n_bins: Optional[int] = None,
    base: Optional[float] = None,
    cancel=None,
) -> LagEstimate:
    """
    Select the embedding delay as the first minimum of AMI.

    Parameters
    ----------
    x : array
        Time series
    lag_max : int
        Ceiling on the delay; the selected tau satisfies 1 <= tau < lag_max
    n_bins : int, optional
        Bins per axis (None = Sturges' rule)

    Returns
    -------
    LagEstimate

    Raises
    ------
    NoLocalMinimumFound
        If AMI decreases (or stays flat) over the whole range
    InsufficientSamples
        If lag_max >= len(x)

    Examples
    --------
    >>> x = np.sin(2 * np.pi * np.arange(5000) / 100)
    >>> estimate_time_lag(x, lag_max=60).tau   # binning dip, not the quarter period
    4
    """
    curve = average_mutual_information(x, lag_max, n_bins=n_bins, base=base, cancel=cancel)
    tau = first_local_minimum(curve.ami)
    logger.debug(f"AMI first minimum at tau={tau} (n_bins={curve.n_bins}, lag_max={lag_max})")
    return LagEstimate(tau=tau, curve=curve)
