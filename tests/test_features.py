"""Tests for Betti numbers and persistence summary statistics."""

import numpy as np
import pytest

from phasescope.topology import (
    INFINITY,
    PersistenceDiagram,
    betti_curve,
    betti_numbers,
    compute_rips_persistence,
    persistence_entropy,
    persistence_statistics,
    topological_complexity,
)


def _diagram(triples, max_dimension=1):
    dims, births, deaths = zip(*triples)
    return PersistenceDiagram(
        dimensions=np.array(dims, dtype=int),
        births=np.array(births, dtype=float),
        deaths=np.array(deaths, dtype=float),
        max_dimension=max_dimension,
        max_scale=2.0,
    )


@pytest.fixture
def triangle_diagram():
    # equilateral triangle with unit sides
    return _diagram([
        (0, 0.0, 1.0),
        (0, 0.0, 1.0),
        (0, 0.0, INFINITY),
        (1, 1.0, 1.0),
    ])


class TestBettiNumbers:

    def test_before_edges(self, triangle_diagram):
        assert betti_numbers(triangle_diagram, 0.5) == {0: 3, 1: 0}

    def test_after_merge(self, triangle_diagram):
        assert betti_numbers(triangle_diagram, 1.0) == {0: 1, 1: 0}

    def test_loop_alive(self):
        diagram = _diagram([(0, 0.0, INFINITY), (1, 1.0, 1.5)])
        assert betti_numbers(diagram, 1.2) == {0: 1, 1: 1}
        assert betti_numbers(diagram, 1.5) == {0: 1, 1: 0}

    def test_curve_matches_pointwise(self, triangle_diagram):
        thresholds = np.linspace(0, 2, 9)
        curves = betti_curve(triangle_diagram, thresholds)
        for i, t in enumerate(thresholds):
            betti = betti_numbers(triangle_diagram, t)
            assert curves[0][i] == betti[0]
            assert curves[1][i] == betti[1]

    def test_square_loop(self):
        square = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
        diagram = compute_rips_persistence(square, max_dimension=1, max_scale=2.0)
        assert betti_numbers(diagram, 1.2) == {0: 1, 1: 1}
        assert betti_numbers(diagram, 1.5) == {0: 1, 1: 0}


class TestPersistenceStatistics:

    def test_entropy_of_equal_lifetimes(self):
        diagram = _diagram([(1, 0.0, 1.0)] * 4)
        assert persistence_entropy(diagram, 1) == pytest.approx(np.log(4))

    def test_entropy_of_single_feature(self):
        diagram = _diagram([(1, 0.2, 0.7)])
        assert persistence_entropy(diagram, 1) == 0.0

    def test_entropy_ignores_infinite(self):
        diagram = _diagram([(0, 0.0, 1.0), (0, 0.0, 1.0), (0, 0.0, INFINITY)])
        assert persistence_entropy(diagram, 0) == pytest.approx(np.log(2))

    def test_statistics(self, triangle_diagram):
        stats = persistence_statistics(triangle_diagram, 0)
        assert stats['n_features'] == 3
        assert stats['n_essential'] == 1
        assert stats['total_persistence'] == pytest.approx(2.0)
        assert stats['max_persistence'] == pytest.approx(1.0)
        assert stats['mean_persistence'] == pytest.approx(1.0)
        assert stats['std_persistence'] == 0.0

    def test_statistics_all_essential(self):
        diagram = _diagram([(0, 0.0, INFINITY), (0, 0.0, INFINITY)])
        stats = persistence_statistics(diagram, 0)
        assert stats['n_features'] == 2
        assert stats['n_essential'] == 2
        assert stats['total_persistence'] == 0.0

    def test_statistics_empty_dimension(self, triangle_diagram):
        stats = persistence_statistics(triangle_diagram, 2)
        assert stats['n_features'] == 0
        assert stats['max_persistence'] == 0.0

    def test_complexity_weights_dimension(self):
        diagram = _diagram([(0, 0.0, 1.0), (1, 0.5, 1.0)])
        # 1 * 1.0 + 2 * 0.5
        assert topological_complexity(diagram) == pytest.approx(2.0)

    def test_complexity_of_triangle(self, triangle_diagram):
        assert topological_complexity(triangle_diagram) == pytest.approx(2.0)
