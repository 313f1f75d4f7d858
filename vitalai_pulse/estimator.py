"""
Rolling-window heart-rate estimator.

Algorithm
---------
1. Keep every (value, timestamp) sample from the last ``window_ms``
   milliseconds, measured back from the newest sample.
2. Once at least ``min_samples`` samples are held, remove the DC offset
   (the window mean) from the signal.
3. Collect the timestamps of strict local maxima that rise above
   ``peak_threshold``; each is taken as one pulse.
4. Average the intervals between successive pulses and convert to BPM.
5. Report the BPM only if it falls in ``[bpm_low, bpm_high]``.

Every degenerate case resolves to ``None`` ("no estimate"), never to 0 BPM
and never to an exception.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple

import numpy as np
from scipy.signal import argrelmax

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeartRateEstimate:
    """Result of one successful analysis pass."""

    bpm: int


class HeartRateEstimator:
    """
    Peak-counting BPM estimator over a time-bounded sample window.

    Parameters
    ----------
    window_ms:
        How far back (in ms, relative to the newest sample) samples are kept.
    min_samples:
        Minimum number of samples in the window before ``analyze`` will
        attempt an estimate.
    peak_threshold:
        Minimum mean-removed amplitude for a local maximum to count as a
        pulse.  Same units as the brightness signal.
    min_peaks:
        Minimum number of detected pulses required for an estimate.
    bpm_low, bpm_high:
        Inclusive physiologically plausible range.  Rates outside it are
        suppressed.
    """

    def __init__(
        self,
        window_ms: int = 10_000,
        min_samples: int = 150,
        peak_threshold: float = 0.5,
        min_peaks: int = 3,
        bpm_low: int = 50,
        bpm_high: int = 180,
    ) -> None:
        self.window_ms = window_ms
        self.min_samples = min_samples
        self.peak_threshold = peak_threshold
        self.min_peaks = min_peaks
        self.bpm_low = bpm_low
        self.bpm_high = bpm_high

        self._values: Deque[float] = deque()
        self._timestamps: Deque[int] = deque()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop every sample in the window."""
        self._values.clear()
        self._timestamps.clear()

    def add_sample(self, value: float, timestamp_ms: int) -> None:
        """
        Append one brightness reading and evict samples that fell out of
        the window.

        Samples must arrive in non-decreasing *timestamp_ms* order.  Values
        are not validated: NaN or out-of-range readings are kept as-is.
        """
        self._values.append(value)
        self._timestamps.append(timestamp_ms)

        cutoff = timestamp_ms - self.window_ms
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()
            self._values.popleft()

    def analyze(self) -> Optional[HeartRateEstimate]:
        """
        Return the current BPM estimate, or ``None`` when there is not
        enough evidence for a plausible rate.

        Does not modify the window, so repeated calls agree.
        """
        if not self._values or len(self._values) < self.min_samples:
            return None

        timestamps, values = self.samples()
        with np.errstate(invalid="ignore", over="ignore"):
            centred = values - values.mean()
            # strict on both sides, endpoints never qualify
            (candidates,) = argrelmax(centred)
            peaks = timestamps[candidates[centred[candidates] > self.peak_threshold]]

        if len(peaks) < self.min_peaks:
            logger.debug("Only %d peaks in %d samples.", len(peaks), len(values))
            return None

        mean_interval = float(np.diff(peaks).mean())
        if not math.isfinite(mean_interval) or mean_interval <= 0:
            return None

        # Half-up rounding; Python's round() would round half to even.
        bpm = int(math.floor(60_000.0 / mean_interval + 0.5))
        if not self.bpm_low <= bpm <= self.bpm_high:
            logger.debug("Rejected implausible rate %d BPM.", bpm)
            return None
        return HeartRateEstimate(bpm=bpm)

    def samples(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(timestamps_ms, values)`` of the current window as arrays."""
        return (
            np.array(self._timestamps, dtype=np.int64),
            np.array(self._values, dtype=np.float64),
        )

    @property
    def is_ready(self) -> bool:
        """True once the window holds enough samples to attempt an estimate."""
        return len(self._values) >= self.min_samples

    @property
    def fill_ratio(self) -> float:
        """Progress towards ``min_samples`` (0 – 1)."""
        if self.min_samples <= 0:
            return 1.0
        return min(len(self._values) / self.min_samples, 1.0)

    def __len__(self) -> int:
        return len(self._values)
