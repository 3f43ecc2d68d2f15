"""
Topological Feature Extraction

Computes summary statistics from persistence diagrams for the reporting
layer. Infinite deaths count as alive for Betti numbers and are ignored
by the persistence statistics.
"""

from typing import Dict

import numpy as np

from .persistence import PersistenceDiagram


def betti_numbers(diagram: PersistenceDiagram, threshold: float) -> Dict[int, int]:
    """
    Compute Betti numbers at a given filtration threshold.

    beta_k(threshold) = number of k-dimensional features alive at threshold

    Returns
    -------
    betti : dict
        {dimension: count} for every dimension up to diagram.max_dimension
    """
    alive = (diagram.births <= threshold) & (diagram.deaths > threshold)
    return {
        dim: int(np.sum(alive & (diagram.dimensions == dim)))
        for dim in range(diagram.max_dimension + 1)
    }


def betti_curve(diagram: PersistenceDiagram, thresholds: np.ndarray) -> Dict[int, np.ndarray]:
    """
    Betti numbers across a grid of filtration values.

    Returns
    -------
    curves : dict
        {dimension: array of len(thresholds)}
    """
    thresholds = np.asarray(thresholds, dtype=float)
    curves = {}
    for dim in range(diagram.max_dimension + 1):
        sub = diagram.in_dimension(dim)
        alive = (sub.births[:, None] <= thresholds[None, :]) & (sub.deaths[:, None] > thresholds[None, :])
        curves[dim] = alive.sum(axis=0)
    return curves


def persistence_entropy(diagram: PersistenceDiagram, dimension: int) -> float:
    """Shannon entropy (nats) of normalised finite lifetimes in one dimension."""
    pers = diagram.in_dimension(dimension).finite().persistence
    total = pers.sum()
    if len(pers) == 0 or total <= 0:
        return 0.0
    p = pers[pers > 0] / total
    return float(-np.sum(p * np.log(p)))


def persistence_statistics(diagram: PersistenceDiagram, dimension: int) -> Dict[str, float]:
    """
    Compute summary statistics for one homology dimension.

    Returns
    -------
    stats : dict
        n_features counts every class (finite or not); the persistence
        figures use finite lifetimes only.
    """
    sub = diagram.in_dimension(dimension)
    pers = sub.finite().persistence

    if len(pers) == 0:
        return {
            'n_features': len(sub),
            'n_essential': len(sub),
            'total_persistence': 0.0,
            'max_persistence': 0.0,
            'mean_persistence': 0.0,
            'std_persistence': 0.0,
            'persistence_entropy': 0.0,
        }

    return {
        'n_features': len(sub),
        'n_essential': len(sub) - len(pers),
        'total_persistence': float(np.sum(pers)),
        'max_persistence': float(np.max(pers)),
        'mean_persistence': float(np.mean(pers)),
        'std_persistence': float(np.std(pers)) if len(pers) > 1 else 0.0,
        'persistence_entropy': persistence_entropy(diagram, dimension),
    }


def topological_complexity(diagram: PersistenceDiagram) -> float:
    """
    Overall complexity score: total finite persistence, weighted by
    dimension + 1 so loops and voids count more than components.
    """
    return float(sum(
        (dim + 1) * persistence_statistics(diagram, dim)['total_persistence']
        for dim in range(diagram.max_dimension + 1)
    ))
