"""
Tests for AMI delay selection.

The binning rule is fixed (shared edges, Sturges' rule), so AMI must be
reproducible, non-negative and unchanged by reversing the signal.
"""

import numpy as np
import pytest

from phasescope.errors import InsufficientSamples, NoLocalMinimumFound
from phasescope.information import (
    average_mutual_information,
    estimate_time_lag,
    first_local_minimum,
    lagged_mutual_information,
    sturges_bins,
)

from conftest import logistic_map, sine_wave


# ─────────────────────────────────────────────────────────────────────
# Binning rule
# ─────────────────────────────────────────────────────────────────────

class TestSturgesBins:

    def test_known_values(self):
        assert sturges_bins(1) == 1
        assert sturges_bins(2) == 2
        assert sturges_bins(1000) == 11
        assert sturges_bins(1024) == 11
        assert sturges_bins(5000) == 14

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            sturges_bins(0)

    def test_curve_records_bins(self):
        curve = average_mutual_information(sine_wave(1000), lag_max=10)
        assert curve.n_bins == 11

    def test_explicit_bins_override(self):
        curve = average_mutual_information(sine_wave(1000), lag_max=10, n_bins=5)
        assert curve.n_bins == 5


# ─────────────────────────────────────────────────────────────────────
# AMI curve
# ─────────────────────────────────────────────────────────────────────

class TestAverageMutualInformation:

    def test_curve_shape(self):
        curve = average_mutual_information(logistic_map(2000), lag_max=15)
        np.testing.assert_array_equal(curve.lags, np.arange(16))
        assert curve.ami.shape == (16,)
        assert curve.lag_max == 15

    def test_non_negative(self):
        rng = np.random.default_rng(1)
        curve = average_mutual_information(rng.normal(size=3000), lag_max=20)
        assert np.all(curve.ami >= 0)

    def test_lag_zero_is_maximal(self):
        """AMI(0) is the binned entropy, an upper bound for every lag."""
        curve = average_mutual_information(logistic_map(3000), lag_max=10)
        assert np.all(curve.ami[1:] <= curve.ami[0] + 1e-12)

    @pytest.mark.parametrize('make', [
        lambda: sine_wave(2000),
        lambda: logistic_map(2000),
        lambda: np.random.default_rng(3).normal(size=2000),
    ])
    def test_time_reversal_invariant(self, make):
        x = make()
        forward = average_mutual_information(x, lag_max=25)
        backward = average_mutual_information(x[::-1], lag_max=25)
        np.testing.assert_allclose(forward.ami, backward.ami, rtol=1e-10, atol=1e-12)

    def test_deterministic_signal_beats_noise(self):
        """The logistic map is a function of its previous value."""
        edges = np.linspace(0, 1, 12)
        x = logistic_map(4000)
        noise = np.random.default_rng(5).uniform(size=4000)
        assert lagged_mutual_information(x, 1, edges) > 5 * lagged_mutual_information(noise, 1, edges)

    def test_constant_signal_has_no_information(self):
        curve = average_mutual_information(np.full(100, 3.0), lag_max=5)
        np.testing.assert_allclose(curve.ami, 0.0, atol=1e-12)

    def test_lag_max_must_leave_pairs(self):
        with pytest.raises(InsufficientSamples):
            average_mutual_information(np.arange(10.0), lag_max=10)

    def test_lag_max_too_small(self):
        with pytest.raises(ValueError):
            average_mutual_information(np.arange(10.0), lag_max=1)

    def test_rejects_nan(self):
        x = sine_wave(100)
        x[5] = np.nan
        with pytest.raises(ValueError):
            average_mutual_information(x, lag_max=5)

    def test_repeatable(self):
        x = logistic_map(2000)
        a = average_mutual_information(x, lag_max=20)
        b = average_mutual_information(x, lag_max=20)
        np.testing.assert_array_equal(a.ami, b.ami)

    def test_to_frame(self):
        df = average_mutual_information(sine_wave(500), lag_max=8).to_frame()
        assert list(df.columns) == ['lag', 'ami']
        assert len(df) == 9


# ─────────────────────────────────────────────────────────────────────
# First local minimum
# ─────────────────────────────────────────────────────────────────────

class TestFirstLocalMinimum:

    def test_simple_dip(self):
        assert first_local_minimum([5.0, 4.0, 3.0, 3.5, 2.0]) == 2

    def test_plateau_counts_as_minimum(self):
        # AMI(1) < AMI(0) and AMI(1) <= AMI(2)
        assert first_local_minimum([5.0, 4.0, 4.0, 3.0]) == 1

    def test_first_not_deepest(self):
        assert first_local_minimum([5.0, 3.0, 4.0, 1.0, 2.0]) == 1

    def test_flat_start_is_skipped(self):
        assert first_local_minimum([2.0, 2.0, 1.0, 1.5]) == 2

    def test_monotone_raises(self):
        with pytest.raises(NoLocalMinimumFound) as exc:
            first_local_minimum([5.0, 4.0, 3.0, 2.0, 1.0])
        assert exc.value.lag_max == 4

    def test_increasing_raises(self):
        with pytest.raises(NoLocalMinimumFound):
            first_local_minimum([1.0, 2.0, 3.0])


class TestEstimateTimeLag:

    def test_sine_lag_below_half_period(self):
        """AMI returns to its maximum at half a period, so a minimum lies before it."""
        x = np.sin(2 * np.pi * np.arange(5000) / 100)
        estimate = estimate_time_lag(x, lag_max=60)
        assert 1 <= estimate.tau <= 50
        assert estimate.curve.ami[estimate.tau] < estimate.curve.ami[0]

    def test_sine_lag_is_pinned(self, sine_signal):
        """The Sturges grid gives a binning dip before the quarter period.

        Pinned so that any change to the binning rule shows up here.
        """
        x = np.sin(2 * np.pi * np.arange(5000) / 100)
        estimate = estimate_time_lag(x, lag_max=60)
        assert estimate.curve.n_bins == 14
        assert estimate.tau == 4
        assert estimate.curve.ami[4] < estimate.curve.ami[3]
        assert estimate.curve.ami[4] <= estimate.curve.ami[5]

        assert estimate_time_lag(sine_signal, lag_max=60).tau == 2

    def test_within_ceiling(self):
        estimate = estimate_time_lag(logistic_map(5000), lag_max=20)
        assert 1 <= estimate.tau < 20

    def test_idempotent(self):
        x = logistic_map(3000)
        a = estimate_time_lag(x, lag_max=20)
        b = estimate_time_lag(x, lag_max=20)
        assert a.tau == b.tau
        np.testing.assert_array_equal(a.curve.ami, b.curve.ami)
