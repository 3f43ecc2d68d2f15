"""
Persistent Homology Computation

Computes persistent homology of a Vietoris-Rips filtration by reducing
its boundary matrix over Z/2. Tracks topological features (components,
loops, voids) across scales.

The reduction runs from the highest dimension down and uses clearing
(the "twist"): once a column has pivot i, column i is known to reduce
to zero and is skipped.

References:
    Edelsbrunner, H., Letscher, D., & Zomorodian, A. (2002).
    "Topological persistence and simplification"
    Chen, C., & Kerber, M. (2011). "Persistent homology computation
    with a twist"
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from phasescope.errors import DegenerateFiltration, check_cancelled
from .filtration import Filtration, rips_filtration


logger = logging.getLogger(__name__)


# Death value of classes that survive the whole filtration
INFINITY = np.inf


@dataclass(frozen=True)
class PersistenceDiagram:
    """
    Multiset of (dimension, birth, death) triples.

    Entries are unordered within a dimension; use sorted() for stable
    comparisons.
    """
    dimensions: np.ndarray
    births: np.ndarray
    deaths: np.ndarray
    max_dimension: int
    max_scale: float
    degenerate: bool = False

    def __len__(self) -> int:
        return len(self.births)

    @property
    def persistence(self) -> np.ndarray:
        """Lifetime of each feature."""
        return self.deaths - self.births

    def _subset(self, mask: np.ndarray) -> 'PersistenceDiagram':
        return PersistenceDiagram(
            dimensions=self.dimensions[mask],
            births=self.births[mask],
            deaths=self.deaths[mask],
            max_dimension=self.max_dimension,
            max_scale=self.max_scale,
            degenerate=self.degenerate,
        )

    def in_dimension(self, dimension: int) -> 'PersistenceDiagram':
        return self._subset(self.dimensions == dimension)

    def finite(self) -> 'PersistenceDiagram':
        return self._subset(np.isfinite(self.deaths))

    def n_features(self, dimension: int) -> int:
        return int(np.sum(self.dimensions == dimension))

    def filter_by_persistence(self, min_persistence: float) -> 'PersistenceDiagram':
        """Keep only features with persistence above threshold."""
        return self._subset(self.persistence >= min_persistence)

    def sorted(self) -> 'PersistenceDiagram':
        """Order by (dimension, birth, death)."""
        order = np.lexsort((self.deaths, self.births, self.dimensions))
        return self._subset(order)

    def pairs(self) -> List[Tuple[int, float, float]]:
        return [
            (int(d), float(b), float(e))
            for d, b, e in zip(self.dimensions, self.births, self.deaths)
        ]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'dimension': self.dimensions,
            'birth': self.births,
            'death': self.deaths,
        })


def reduce_boundary_matrix(
    filtration: Filtration,
    cancel=None,
) -> Tuple[List[Tuple[int, int]], List[int]]:
    """
    Standard column reduction with clearing.

    Parameters
    ----------
    filtration : Filtration
    cancel : threading.Event, optional

    Returns
    -------
    pairs : list of (birth_slot, death_slot)
        Arena slots of the simplex creating and the simplex killing a class
    essential : list of int
        Slots of creators that are never killed, in dimensions
        <= filtration.max_dimension
    """
    lookup = filtration.positions()
    dims = filtration.dimensions
    top = int(dims.max()) if len(dims) else 0

    reduced: Dict[int, set] = {}
    pivot_of: Dict[int, int] = {}   # low row -> column that owns it
    cleared = set()
    zero_columns = set(np.nonzero(dims == 0)[0].tolist())

    for dim in range(top, 0, -1):
        check_cancelled(cancel, 'boundary matrix reduction')
        for j in np.nonzero(dims == dim)[0].tolist():
            if j in cleared:
                continue
            column = set(filtration.boundary(j, lookup))
            while column:
                low = max(column)
                owner = pivot_of.get(low)
                if owner is None:
                    break
                column.symmetric_difference_update(reduced[owner])
            if column:
                low = max(column)
                pivot_of[low] = j
                reduced[j] = column
                cleared.add(low)
            else:
                zero_columns.add(j)

    pairs = sorted((low, j) for low, j in pivot_of.items())
    essential = sorted(
        j for j in zero_columns
        if j not in pivot_of and dims[j] <= filtration.max_dimension
    )
    return pairs, essential


def diagram_from_filtration(filtration: Filtration, cancel=None) -> PersistenceDiagram:
    """Reduce the boundary matrix and collect (dimension, birth, death) triples."""
    pairs, essential = reduce_boundary_matrix(filtration, cancel=cancel)

    dimensions, births, deaths = [], [], []
    for birth_slot, death_slot in pairs:
        dim = int(filtration.dimensions[birth_slot])
        if dim > filtration.max_dimension:
            continue
        dimensions.append(dim)
        births.append(filtration.values[birth_slot])
        deaths.append(filtration.values[death_slot])

    for slot in essential:
        dimensions.append(int(filtration.dimensions[slot]))
        births.append(filtration.values[slot])
        deaths.append(INFINITY)

    degenerate = filtration.count(1) == 0
    if degenerate:
        warnings.warn(
            f"No edge of the Rips complex on {filtration.n_vertices} points "
            f"enters below max_scale={filtration.max_scale}; diagram is trivial",
            DegenerateFiltration,
            stacklevel=3,
        )

    return PersistenceDiagram(
        dimensions=np.array(dimensions, dtype=int),
        births=np.array(births, dtype=float),
        deaths=np.array(deaths, dtype=float),
        max_dimension=filtration.max_dimension,
        max_scale=filtration.max_scale,
        degenerate=degenerate,
    )


def compute_rips_persistence(
    point_cloud: np.ndarray,
    max_dimension: int,
    max_scale: float,
    cancel: Optional[object] = None,
) -> PersistenceDiagram:
    """
    Compute persistent homology using Vietoris-Rips complex.

    Parameters
    ----------
    point_cloud : array, shape (n_points, n_dims)
        Point cloud data (already subsampled)
    max_dimension : int
        Maximum homology dimension to compute (0, 1 or 2)
    max_scale : float
        Maximum filtration value
    cancel : threading.Event, optional

    Returns
    -------
    diagram : PersistenceDiagram
        Classes alive at max_scale get death INFINITY.

    Warns
    -----
    DegenerateFiltration
        If no edge is shorter than max_scale
    """
    filtration = rips_filtration(point_cloud, max_dimension, max_scale, cancel=cancel)
    logger.debug(
        f"Rips filtration: {len(filtration)} simplices on {filtration.n_vertices} points "
        f"(max_dimension={max_dimension}, max_scale={max_scale})"
    )
    return diagram_from_filtration(filtration, cancel=cancel)
