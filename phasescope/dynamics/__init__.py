"""
PHASESCOPE Dynamics Engine

Reconstructs the attractor of a scalar time series and measures
sensitivity to initial conditions:
- Takens delay-coordinate embedding
- False nearest neighbours (embedding dimension check)
- Maximal Lyapunov exponent (stability/chaos)
"""

from .reconstruction import (
    PointCloud,
    embed_time_series,
    takens_embedding,
    false_nearest_neighbors,
    optimal_embedding_dim,
)
from .lyapunov import (
    DivergenceCurve,
    LyapunovEstimate,
    divergence_curve,
    divergence_curve_from_cloud,
    fit_lyapunov,
    max_lyapunov,
)

__all__ = [
    # Reconstruction
    'PointCloud',
    'embed_time_series',
    'takens_embedding',
    'false_nearest_neighbors',
    'optimal_embedding_dim',
    # Lyapunov
    'DivergenceCurve',
    'LyapunovEstimate',
    'divergence_curve',
    'divergence_curve_from_cloud',
    'fit_lyapunov',
    'max_lyapunov',
]
