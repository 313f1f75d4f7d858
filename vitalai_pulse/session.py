"""
Monitoring session: calibration, sampling cadence and reading history.

A session owns one :class:`HeartRateEstimator` for its whole lifetime and
drives it from frames (or raw samples) supplied by the caller, together with
the caller's wall-clock timestamps.  It performs no I/O and starts no timers,
so it can be driven from a camera loop or from synthetic data alike.

Lifecycle::

    idle ──start()──▶ calibrating ──(calibration_ms elapsed)──▶ measuring
      ▲                    │                                        │
      └──────stop()────────┴────────────────stop()──────────────────┘

``fail()`` moves any state to ``error``; ``start()`` recovers from it.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Tuple

import numpy as np

from vitalai_pulse.estimator import HeartRateEstimate, HeartRateEstimator
from vitalai_pulse.sampler import RedChannelSampler

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    CALIBRATING = "calibrating"
    MEASURING = "measuring"
    ERROR = "error"


@dataclass(frozen=True)
class HeartRateReading:
    timestamp_ms: int
    bpm: int


class MonitoringSession:
    """
    One heart-rate monitoring session.

    Parameters
    ----------
    estimator:
        Estimator to feed.  A default :class:`HeartRateEstimator` is created
        when omitted.
    sampler:
        Frame-to-scalar reducer used by :meth:`process_frame`.
    calibration_ms:
        Warm-up period after :meth:`start` during which frames are ignored
        while the camera settles.  Default: 5000 ms.
    history_size:
        Number of most recent readings kept in :attr:`history`.  Must be at
        least 1.
    on_heart_rate:
        Called with the BPM each time an estimate is produced.
    on_status_change:
        Called with the new :class:`SessionStatus` on every transition.
    """

    def __init__(
        self,
        estimator: HeartRateEstimator | None = None,
        sampler: RedChannelSampler | None = None,
        calibration_ms: int = 5000,
        history_size: int = 20,
        on_heart_rate: Callable[[int], None] | None = None,
        on_status_change: Callable[[SessionStatus], None] | None = None,
    ) -> None:
        if history_size < 1:
            raise ValueError(f"history_size must be at least 1, got {history_size}")
        self.estimator = estimator if estimator is not None else HeartRateEstimator()
        self.sampler = sampler if sampler is not None else RedChannelSampler()
        self.calibration_ms = calibration_ms
        self.on_heart_rate = on_heart_rate
        self.on_status_change = on_status_change

        self._status = SessionStatus.IDLE
        self._history: Deque[HeartRateReading] = deque(maxlen=history_size)
        self._start_ms: int | None = None
        self._last_ms: int | None = None
        self._calibration_progress = 0
        self._error: str | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, timestamp_ms: int) -> None:
        """Begin a new session at *timestamp_ms*; history from earlier sessions is dropped."""
        if self.is_active:
            raise RuntimeError(f"Session already running (status={self._status.value}).")
        self.estimator.reset()
        self._history.clear()
        self._error = None
        self._start_ms = timestamp_ms
        self._last_ms = timestamp_ms
        self._calibration_progress = 0
        logger.info("Monitoring started – calibrating for %d ms.", self.calibration_ms)
        if self.calibration_ms <= 0:
            self._calibration_progress = 100
            self._set_status(SessionStatus.MEASURING)
        else:
            self._set_status(SessionStatus.CALIBRATING)

    def stop(self) -> None:
        """End the session.  The last reading and history stay available for display."""
        if self._status is SessionStatus.IDLE:
            return
        self.estimator.reset()
        self._start_ms = None
        self._last_ms = None
        self._calibration_progress = 0
        self._set_status(SessionStatus.IDLE)
        logger.info("Monitoring stopped.")

    def fail(self, message: str) -> None:
        """Abort the session with an error *message* (e.g. camera unavailable)."""
        self.estimator.reset()
        self._error = message
        self._start_ms = None
        self._last_ms = None
        self._calibration_progress = 0
        logger.error("Monitoring failed: %s", message)
        self._set_status(SessionStatus.ERROR)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def process_frame(
        self, frame: np.ndarray, timestamp_ms: int
    ) -> Optional[HeartRateEstimate]:
        """
        Advance the session with one video *frame* captured at *timestamp_ms*.

        Returns the estimate produced by this step, or ``None``.  Frames seen
        during calibration are not sampled.
        """
        if not self._advance(timestamp_ms):
            return None
        return self._measure(self.sampler.sample(frame), timestamp_ms)

    def add_sample(self, value: float, timestamp_ms: int) -> Optional[HeartRateEstimate]:
        """Like :meth:`process_frame` but with an already-reduced brightness *value*."""
        if not self._advance(timestamp_ms):
            return None
        return self._measure(value, timestamp_ms)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status in (SessionStatus.CALIBRATING, SessionStatus.MEASURING)

    @property
    def calibration_progress(self) -> int:
        """Calibration progress in percent (0 – 100)."""
        return self._calibration_progress

    @property
    def measurement_seconds(self) -> int:
        """Whole seconds elapsed since :meth:`start`; 0 when not running."""
        if self._start_ms is None or self._last_ms is None:
            return 0
        return max(0, (self._last_ms - self._start_ms) // 1000)

    @property
    def heart_rate(self) -> int | None:
        """Most recent BPM, or ``None`` if none was produced yet."""
        return self._history[-1].bpm if self._history else None

    @property
    def history(self) -> Tuple[HeartRateReading, ...]:
        return tuple(self._history)

    @property
    def error(self) -> str | None:
        return self._error

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _advance(self, timestamp_ms: int) -> bool:
        """Update the clock; return True when the step should be measured."""
        if not self.is_active:
            raise RuntimeError(
                f"Session is not running (status={self._status.value}).  Call start() first."
            )
        self._last_ms = timestamp_ms
        if self._status is SessionStatus.CALIBRATING:
            elapsed = timestamp_ms - self._start_ms
            self._calibration_progress = min(100, max(0, elapsed * 100 // self.calibration_ms))
            if elapsed < self.calibration_ms:
                return False
            self._calibration_progress = 100
            logger.info("Calibration complete – measuring.")
            self._set_status(SessionStatus.MEASURING)
        return True

    def _measure(self, value: float, timestamp_ms: int) -> Optional[HeartRateEstimate]:
        self.estimator.add_sample(value, timestamp_ms)
        estimate = self.estimator.analyze()
        if estimate is None:
            return None
        self._history.append(HeartRateReading(timestamp_ms=timestamp_ms, bpm=estimate.bpm))
        if self.on_heart_rate is not None:
            self.on_heart_rate(estimate.bpm)
        return estimate

    def _set_status(self, status: SessionStatus) -> None:
        if status is self._status:
            return
        self._status = status
        if self.on_status_change is not None:
            self.on_status_change(status)
