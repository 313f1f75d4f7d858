"""
Real-time overlay visualiser.

Draws the following elements onto each video frame:
  • The sampling region of interest in the frame centre.
  • BPM readout coloured by heart-rate status ("--" when unknown).
  • Session status line and calibration progress bar.
  • Heart-rate trend strip built from the session history.
  • Optional frame-rate counter.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from vitalai_pulse.classification import classify_heart_rate
from vitalai_pulse.session import HeartRateReading, SessionStatus


# ---------------------------------------------------------------------------
# Colour palette (BGR)
# ---------------------------------------------------------------------------
_GREEN  = (0, 220,  80)
_YELLOW = (0, 210, 210)
_WHITE  = (255, 255, 255)
_BLACK  = (0, 0, 0)
_CYAN   = (220, 200,  0)
_PINK   = (99, 30, 233)
_DARK   = (30, 30, 30)

# Fixed y-axis of the trend strip, in BPM.
_TREND_MIN = 40
_TREND_MAX = 140


class Visualizer:
    """
    Draws heart-rate monitoring UI onto OpenCV frames in-place.

    Parameters
    ----------
    resolution:
        (width, height) of the video frame.
    trend_height:
        Pixel height of the trend panel at the bottom of the frame.
    show_fps:
        Whether to overlay computed FPS in the top-right corner.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        trend_height: int = 80,
        show_fps: bool = True,
    ) -> None:
        self.w, self.h = resolution
        self.trend_height = trend_height
        self.show_fps = show_fps

        self._fps_tick = cv2.getTickCount()
        self._fps_display: float = 0.0

    def draw(
        self,
        frame: np.ndarray,
        bpm: Optional[int],
        status: SessionStatus,
        roi: Tuple[int, int, int, int],
        calibration_progress: int = 0,
        measurement_seconds: int = 0,
        history: Sequence[HeartRateReading] = (),
        error: Optional[str] = None,
    ) -> np.ndarray:
        """
        Annotate *frame* in-place and return it.

        Parameters
        ----------
        frame:
            BGR frame from the camera.
        bpm:
            Latest heart rate, or ``None`` when there is no estimate.
        status:
            Current session status.
        roi:
            ``(x, y, w, h)`` of the sampling square.
        calibration_progress:
            Percent complete (0 – 100); drawn while calibrating.
        measurement_seconds:
            Elapsed session time, shown as ``m:ss``.
        history:
            Recent readings for the trend strip.
        error:
            Error message to show when the session failed.
        """
        self._update_fps()

        x, y, rw, rh = roi
        color = _GREEN if status is SessionStatus.MEASURING else _YELLOW
        cv2.rectangle(frame, (x, y), (x + rw, y + rh), color, 2)
        cv2.putText(
            frame, "Place fingertip here",
            (x, y - 8), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA,
        )

        self._draw_bpm(frame, bpm)
        self._draw_status(frame, status, measurement_seconds, error)

        if status is SessionStatus.CALIBRATING:
            self._draw_progress_bar(frame, calibration_progress)

        if len(history) > 1:
            self._draw_trend(frame, history)

        if self.show_fps:
            cv2.putText(
                frame,
                f"FPS {self._fps_display:.1f}",
                (self.w - 100, 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.45, _WHITE, 1, cv2.LINE_AA,
            )

        return frame

    # ------------------------------------------------------------------
    # Private drawing helpers
    # ------------------------------------------------------------------

    def _draw_bpm(self, frame: np.ndarray, bpm: Optional[int]) -> None:
        hr_status = classify_heart_rate(bpm)
        text = f"{bpm} BPM" if bpm is not None else "-- BPM"
        cv2.putText(
            frame, text,
            (16, 52), cv2.FONT_HERSHEY_SIMPLEX, 1.6, _BLACK, 5, cv2.LINE_AA,
        )
        cv2.putText(
            frame, text,
            (16, 52), cv2.FONT_HERSHEY_SIMPLEX, 1.6, hr_status.color, 3, cv2.LINE_AA,
        )
        if bpm is not None:
            cv2.putText(
                frame, hr_status.label,
                (16, 78), cv2.FONT_HERSHEY_SIMPLEX, 0.6, hr_status.color, 2, cv2.LINE_AA,
            )

    def _draw_status(
        self,
        frame: np.ndarray,
        status: SessionStatus,
        measurement_seconds: int,
        error: Optional[str],
    ) -> None:
        if status is SessionStatus.ERROR:
            line = f"Error: {error or 'unknown'}"
        elif status is SessionStatus.MEASURING:
            minutes, seconds = divmod(measurement_seconds, 60)
            line = f"Measuring for: {minutes}:{seconds:02d}"
        else:
            line = f"Status: {status.value.capitalize()}"
        cv2.putText(
            frame, line,
            (16, 104), cv2.FONT_HERSHEY_SIMPLEX, 0.5, _WHITE, 1, cv2.LINE_AA,
        )

    def _draw_progress_bar(self, frame: np.ndarray, progress: int) -> None:
        fill = max(0, min(progress, 100)) / 100.0
        bar_w = int((self.w - 32) * fill)
        y0, y1 = self.h - self.trend_height - 12, self.h - self.trend_height - 4
        cv2.rectangle(frame, (16, y0), (self.w - 16, y1), _DARK, -1)
        cv2.rectangle(frame, (16, y0), (16 + bar_w, y1), _CYAN, -1)
        cv2.putText(
            frame, "calibrating",
            (16, y0 - 2), cv2.FONT_HERSHEY_SIMPLEX, 0.35, _CYAN, 1, cv2.LINE_AA,
        )

    def _draw_trend(self, frame: np.ndarray, history: Sequence[HeartRateReading]) -> None:
        """Draw the recent BPM readings as a polyline in a strip at the bottom."""
        panel_top = self.h - self.trend_height
        cv2.rectangle(frame, (0, panel_top), (self.w, self.h), _DARK, -1)

        rates = np.array([r.bpm for r in history], dtype=np.float64)
        norm = (np.clip(rates, _TREND_MIN, _TREND_MAX) - _TREND_MIN) / (_TREND_MAX - _TREND_MIN)

        margin = 6
        plot_h = self.trend_height - 2 * margin
        xs = np.linspace(0, self.w - 1, len(norm)).astype(np.int32)
        ys = (panel_top + margin + (1.0 - norm) * plot_h).astype(np.int32)

        pts = np.column_stack([xs, ys])
        cv2.polylines(frame, [pts[:, None, :]], False, _PINK, 2, cv2.LINE_AA)

        cv2.putText(
            frame, "Heart Rate Trend",
            (4, panel_top + 14), cv2.FONT_HERSHEY_SIMPLEX, 0.4, _WHITE, 1, cv2.LINE_AA,
        )

    def _update_fps(self) -> None:
        now = cv2.getTickCount()
        elapsed = (now - self._fps_tick) / cv2.getTickFrequency()
        if elapsed > 0:
            self._fps_display = 1.0 / elapsed
        self._fps_tick = now
