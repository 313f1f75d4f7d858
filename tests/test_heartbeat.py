"""
Unit tests for RedChannelSampler, heart-rate classification and the
display overlay.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from vitalai_pulse.classification import classify_heart_rate
from vitalai_pulse.sampler import RedChannelSampler
from vitalai_pulse.session import HeartRateReading, SessionStatus
from vitalai_pulse.visualizer import Visualizer


# ---------------------------------------------------------------------------
# RedChannelSampler tests
# ---------------------------------------------------------------------------

class TestRedChannelSampler:

    def test_roi_is_centred(self):
        sampler = RedChannelSampler(sample_size=100)
        assert sampler.roi((480, 640, 3)) == (270, 190, 100, 100)

    def test_roi_clipped_to_small_frame(self):
        sampler = RedChannelSampler(sample_size=100)
        assert sampler.roi((40, 50, 3)) == (0, 0, 50, 40)

    def test_samples_red_inside_roi_only(self):
        sampler = RedChannelSampler(sample_size=100)
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        frame[190:290, 270:370, 2] = 200     # red inside ROI
        frame[:, :, 1] = 90                  # green everywhere
        frame[0:50, 0:50, 2] = 255           # red outside ROI
        assert sampler.sample(frame) == pytest.approx(200.0)

    def test_mean_over_roi(self):
        sampler = RedChannelSampler(sample_size=4)
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        frame[:2, :, 2] = 100
        assert sampler.sample(frame) == pytest.approx(50.0)

    def test_rejects_grayscale_frame(self):
        sampler = RedChannelSampler()
        with pytest.raises(ValueError):
            sampler.sample(np.zeros((480, 640), dtype=np.uint8))


# ---------------------------------------------------------------------------
# Classification tests
# ---------------------------------------------------------------------------

class TestClassifyHeartRate:

    @pytest.mark.parametrize(
        "bpm, category",
        [
            (50, "bradycardia"),
            (59, "bradycardia"),
            (60, "normal"),
            (80, "normal"),
            (81, "elevated"),
            (100, "elevated"),
            (101, "tachycardia"),
            (180, "tachycardia"),
        ],
    )
    def test_bands(self, bpm, category):
        assert classify_heart_rate(bpm).category == category

    def test_no_estimate_is_unknown_not_low(self):
        status = classify_heart_rate(None)
        assert status.category == "unknown"
        assert status.label == "--"


# ---------------------------------------------------------------------------
# Visualizer tests
# ---------------------------------------------------------------------------

class TestVisualizer:

    def test_draw_annotates_in_place(self):
        vis = Visualizer(resolution=(640, 480))
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        history = [HeartRateReading(timestamp_ms=i * 100, bpm=70 + i) for i in range(5)]
        out = vis.draw(
            frame,
            bpm=74,
            status=SessionStatus.MEASURING,
            roi=(270, 190, 100, 100),
            measurement_seconds=65,
            history=history,
        )
        assert out is frame
        assert frame.any()

    @pytest.mark.parametrize("status", list(SessionStatus))
    def test_draw_every_status_without_estimate(self, status):
        vis = Visualizer(resolution=(320, 240), show_fps=False)
        frame = np.zeros((240, 320, 3), dtype=np.uint8)
        vis.draw(
            frame,
            bpm=None,
            status=status,
            roi=(110, 70, 100, 100),
            calibration_progress=40,
            error="Camera access denied",
        )
        assert frame.shape == (240, 320, 3)
        assert frame.any()

