"""
PHASESCOPE Topology Engine

Computes topological data analysis (TDA) metrics of reconstructed
attractors:
- Seeded point cloud subsampling
- Vietoris-Rips filtration
- Persistent homology (boundary matrix reduction)
- Betti numbers and persistence statistics

Captures the SHAPE of the attractor that the Lyapunov exponent cannot see.
"""

from .sampling import (
    SampledCloud,
    sample_point_cloud,
)
from .filtration import (
    Filtration,
    rips_filtration,
)
from .persistence import (
    INFINITY,
    PersistenceDiagram,
    reduce_boundary_matrix,
    diagram_from_filtration,
    compute_rips_persistence,
)
from .features import (
    betti_numbers,
    betti_curve,
    persistence_entropy,
    persistence_statistics,
    topological_complexity,
)

__all__ = [
    # Sampling
    'SampledCloud',
    'sample_point_cloud',
    # Filtration
    'Filtration',
    'rips_filtration',
    # Persistence
    'INFINITY',
    'PersistenceDiagram',
    'reduce_boundary_matrix',
    'diagram_from_filtration',
    'compute_rips_persistence',
    # Features
    'betti_numbers',
    'betti_curve',
    'persistence_entropy',
    'persistence_statistics',
    'topological_complexity',
]
