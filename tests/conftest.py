"""Shared signals and configurations for the test suite."""

import numpy as np
import pytest

from phasescope.config import (
    AnalysisConfig,
    LagConfig,
    LyapunovConfig,
    TopologyConfig,
)


def logistic_map(n: int, r: float = 3.9, x0: float = 0.4) -> np.ndarray:
    """Chaotic logistic map orbit, lambda ~ 0.49 per step at r=3.9."""
    x = np.empty(n)
    x[0] = x0
    for i in range(n - 1):
        x[i + 1] = r * x[i] * (1.0 - x[i])
    return x


def sine_wave(n: int, omega: float = 0.05) -> np.ndarray:
    """Pure sine; omega = 0.05 rad/sample gives a non-integer period."""
    return np.sin(omega * np.arange(n))


@pytest.fixture
def logistic_signal():
    return logistic_map(5000)


@pytest.fixture
def sine_signal():
    return sine_wave(5000)


@pytest.fixture
def logistic_config():
    return AnalysisConfig(
        sampling_period=1.0,
        lag=LagConfig(lag_max=20),
        lyapunov=LyapunovConfig(
            min_dim=1, max_dim=2, radius=0.02,
            max_time_steps=10, theiler_window=5, window=(0, 4),
        ),
        topology=TopologyConfig(sample_size=100, seed=7, max_dimension=1, max_scale=0.3),
    )


@pytest.fixture
def sine_config():
    return AnalysisConfig(
        sampling_period=1.0,
        lag=LagConfig(lag_max=60),
        lyapunov=LyapunovConfig(
            min_dim=2, max_dim=3, radius=0.05,
            max_time_steps=10, theiler_window=20, window=(0, 5),
        ),
        topology=TopologyConfig(sample_size=100, seed=7, max_dimension=1, max_scale=0.5),
    )
