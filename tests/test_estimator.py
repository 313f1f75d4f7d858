"""
Unit tests for HeartRateEstimator.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from vitalai_pulse.estimator import HeartRateEstimate, HeartRateEstimator


def _sine(freq_hz, seconds, fs=30.0, amplitude=2.0, offset=100.0, phase=0.3):
    """Return ``(values, timestamps_ms)`` of a sampled sine wave."""
    t = np.arange(int(round(fs * seconds))) / fs
    values = offset + amplitude * np.sin(2 * np.pi * freq_hz * t + phase)
    timestamps = np.round(t * 1000).astype(int)
    return values, timestamps


def _feed(est, values, timestamps):
    for v, ts in zip(values, timestamps):
        est.add_sample(float(v), int(ts))


def _spikes(n, spike_indices, step_ms, height=10.0):
    values = np.zeros(n)
    values[list(spike_indices)] = height
    return values, np.arange(n) * step_ms


# ---------------------------------------------------------------------------
# Window management
# ---------------------------------------------------------------------------

class TestSampleWindow:

    def test_empty_estimator(self):
        est = HeartRateEstimator()
        assert len(est) == 0
        assert not est.is_ready
        assert est.fill_ratio == 0.0

    def test_evicts_samples_older_than_window(self):
        """20 s at 10 Hz leaves only the trailing 10 s."""
        est = HeartRateEstimator()
        for i in range(200):
            est.add_sample(100.0, i * 100)
        timestamps, _ = est.samples()
        assert len(est) == 101
        assert timestamps[0] == 9900
        assert timestamps[-1] == 19900

    def test_sample_exactly_at_window_edge_is_kept(self):
        est = HeartRateEstimator(window_ms=10_000)
        est.add_sample(1.0, 0)
        est.add_sample(2.0, 10_000)
        assert len(est) == 2
        est.add_sample(3.0, 10_001)
        timestamps, values = est.samples()
        assert list(timestamps) == [10_000, 10_001]
        assert list(values) == [2.0, 3.0]

    def test_large_gap_empties_old_history(self):
        est = HeartRateEstimator()
        for i in range(50):
            est.add_sample(1.0, i * 100)
        est.add_sample(1.0, 60_000)
        assert len(est) == 1

    def test_nan_values_are_accepted(self):
        est = HeartRateEstimator()
        est.add_sample(float("nan"), 0)
        est.add_sample(float("inf"), 10)
        assert len(est) == 2

    def test_reset_clears_window(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(1.2, 8.0)
        _feed(est, values, timestamps)
        assert est.is_ready
        est.reset()
        assert len(est) == 0
        assert est.fill_ratio == 0.0
        assert est.analyze() is None

    def test_fill_ratio_and_ready(self):
        est = HeartRateEstimator(min_samples=150)
        for i in range(75):
            est.add_sample(0.0, i * 33)
        assert est.fill_ratio == pytest.approx(0.5)
        assert not est.is_ready
        for i in range(75, 200):
            est.add_sample(0.0, i * 33)
        assert est.fill_ratio == 1.0
        assert est.is_ready


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

class TestAnalyze:

    def test_fewer_than_min_samples_returns_none(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(1.2, 8.0, amplitude=20.0)
        _feed(est, values[:149], timestamps[:149])
        assert est.analyze() is None

    def test_concrete_72_bpm(self):
        """150 samples over 5 s of a 1.2 Hz sine with amplitude 2.0."""
        est = HeartRateEstimator()
        values, timestamps = _sine(1.2, 5.0, amplitude=2.0, phase=0.0)
        assert len(values) == 150
        _feed(est, values, timestamps)
        result = est.analyze()
        assert isinstance(result, HeartRateEstimate)
        assert abs(result.bpm - 72) <= 1

    @pytest.mark.parametrize("freq_hz", [0.9, 1.0, 1.2, 1.5, 2.0, 2.5])
    def test_sine_frequency_recovered(self, freq_hz):
        est = HeartRateEstimator()
        values, timestamps = _sine(freq_hz, 10.0)
        _feed(est, values, timestamps)
        result = est.analyze()
        assert result is not None
        assert abs(result.bpm - freq_hz * 60) <= 1

    def test_constant_signal_returns_none(self):
        est = HeartRateEstimator()
        for i in range(300):
            est.add_sample(128.0, i * 33)
        assert est.analyze() is None

    def test_amplitude_below_threshold_returns_none(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(1.2, 8.0, amplitude=0.4)
        _feed(est, values, timestamps)
        assert est.analyze() is None

    def test_two_peaks_are_not_enough(self):
        est = HeartRateEstimator()
        values, timestamps = _spikes(200, [50, 100], step_ms=20)
        _feed(est, values, timestamps)
        assert est.analyze() is None

    def test_three_peaks_give_estimate(self):
        est = HeartRateEstimator()
        values, timestamps = _spikes(200, [50, 100, 150], step_ms=20)
        _feed(est, values, timestamps)
        assert est.analyze() == HeartRateEstimate(bpm=60)

    def test_endpoints_never_count_as_peaks(self):
        est = HeartRateEstimator()
        values, timestamps = _spikes(200, [0, 50, 100, 199], step_ms=20)
        _feed(est, values, timestamps)
        assert est.analyze() is None

    def test_plateau_is_not_a_peak(self):
        est = HeartRateEstimator()
        values, timestamps = _spikes(200, [50, 51, 100, 101, 150, 151], step_ms=20)
        _feed(est, values, timestamps)
        assert est.analyze() is None

    def test_rounds_half_up(self):
        """Intervals of 960 ms give exactly 62.5 BPM, reported as 63."""
        est = HeartRateEstimator()
        values, timestamps = _spikes(250, [10, 106, 202], step_ms=10)
        _feed(est, values, timestamps)
        assert est.analyze() == HeartRateEstimate(bpm=63)

    def test_below_range_rejected(self):
        """45 BPM is detected internally but suppressed by the 50 BPM floor."""
        values, timestamps = _sine(0.75, 10.0)

        est = HeartRateEstimator()
        _feed(est, values, timestamps)
        assert est.analyze() is None

        permissive = HeartRateEstimator(bpm_low=40)
        _feed(permissive, values, timestamps)
        assert permissive.analyze() == HeartRateEstimate(bpm=45)

    def test_lower_bound_inclusive(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(50 / 60, 10.0)
        _feed(est, values, timestamps)
        assert est.analyze() == HeartRateEstimate(bpm=50)

    def test_upper_bound_inclusive(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(3.0, 10.0)
        _feed(est, values, timestamps)
        assert est.analyze() == HeartRateEstimate(bpm=180)

    def test_above_range_rejected(self):
        est = HeartRateEstimator()
        values, timestamps = _spikes(300, range(5, 300, 10), step_ms=20)   # 300 BPM
        _feed(est, values, timestamps)
        assert est.analyze() is None

    def test_duplicate_timestamps_do_not_raise(self):
        est = HeartRateEstimator()
        for i in range(200):
            est.add_sample(3.0 if i % 2 else 0.0, 1000)
        assert est.analyze() is None

    def test_nan_in_window_gives_no_estimate(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(1.2, 8.0)
        values[100] = np.nan
        _feed(est, values, timestamps)
        assert est.analyze() is None

    def test_analyze_is_idempotent(self):
        est = HeartRateEstimator()
        values, timestamps = _sine(1.2, 8.0)
        _feed(est, values, timestamps)
        first = est.analyze()
        second = est.analyze()
        assert first == second
        assert first is not None
        assert len(est) == len(values)
