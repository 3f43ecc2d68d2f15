"""
Vietoris-Rips Filtration

Simplices are stored in a flat arena: one vertex tuple, dimension and
filtration value per slot, ordered by (value, dimension, vertices) so every
face precedes its cofaces. The filtration value of a simplex is the largest
pairwise distance among its vertices (0 for vertices).

Cliques are grown one dimension at a time: a p-simplex (v0 < ... < vp)
extends to (v0, ..., vp, w) for every w > vp adjacent to all of its
vertices within max_scale.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
from scipy.spatial.distance import pdist, squareform

from phasescope.errors import check_cancelled


logger = logging.getLogger(__name__)


VERTEX = 0
EDGE = 1
TRIANGLE = 2
TETRAHEDRON = 3


@dataclass(frozen=True)
class Filtration:
    """Arena of simplices in filtration order."""
    simplices: Tuple[Tuple[int, ...], ...]
    dimensions: np.ndarray
    values: np.ndarray
    n_vertices: int
    max_dimension: int   # highest homology dimension the complex supports
    max_scale: float

    def __len__(self) -> int:
        return len(self.simplices)

    def count(self, dimension: int) -> int:
        return int(np.sum(self.dimensions == dimension))

    def positions(self) -> Dict[Tuple[int, ...], int]:
        """Simplex -> arena slot."""
        return {simplex: i for i, simplex in enumerate(self.simplices)}

    def boundary(self, position: int, lookup: Dict[Tuple[int, ...], int]) -> List[int]:
        """Arena slots of the codimension-1 faces (empty for a vertex)."""
        simplex = self.simplices[position]
        if len(simplex) == 1:
            return []
        return [
            lookup[simplex[:k] + simplex[k + 1:]]
            for k in range(len(simplex))
        ]


def rips_filtration(
    points: np.ndarray,
    max_dimension: int,
    max_scale: float,
    cancel=None,
) -> Filtration:
    """
    Build the Vietoris-Rips filtration up to simplices of dimension
    max_dimension + 1 (needed to kill max_dimension cycles).

    Parameters
    ----------
    points : array, shape (n_points, n_dims)
    max_dimension : int
        Highest homology dimension of interest (0, 1 or 2)
    max_scale : float
        Simplices with a larger filtration value are left out
    cancel : threading.Event, optional

    Returns
    -------
    Filtration
    """
    if max_dimension not in (0, 1, 2):
        raise ValueError(f"max_dimension must be 0, 1 or 2, got {max_dimension}")
    if max_scale < 0:
        raise ValueError(f"max_scale must be >= 0, got {max_scale}")

    points = np.asarray(points, dtype=float)
    if points.ndim == 1:
        points = points[:, None]
    n = len(points)

    if n > 1:
        distances = squareform(pdist(points))
    else:
        distances = np.zeros((n, n))

    entries = [(0.0, VERTEX, (i,)) for i in range(n)]

    # Upper adjacency: neighbours w > v within max_scale
    upper = [
        set((np.nonzero(distances[v, v + 1:] <= max_scale)[0] + v + 1).tolist())
        for v in range(n)
    ]

    current = [((v,), 0.0) for v in range(n)]
    for dim in range(EDGE, max_dimension + 2):
        check_cancelled(cancel, 'Rips construction')
        grown = []
        for simplex, value in current:
            common = set(upper[simplex[-1]])
            for v in simplex[:-1]:
                common &= upper[v]
            for w in sorted(common):
                new_value = max(value, max(distances[v, w] for v in simplex))
                grown.append((simplex + (w,), float(new_value)))
        entries.extend((value, dim, simplex) for simplex, value in grown)
        logger.debug(f"Rips: {len(grown)} simplices of dimension {dim}")
        current = grown

    entries.sort()

    return Filtration(
        simplices=tuple(simplex for _, _, simplex in entries),
        dimensions=np.array([dim for _, dim, _ in entries], dtype=int),
        values=np.array([value for value, _, _ in entries], dtype=float),
        n_vertices=n,
        max_dimension=max_dimension,
        max_scale=float(max_scale),
    )
