"""
Heart-rate status bands used by the display layer.

"No estimate" is its own ``unknown`` band and is never treated as a low
reading.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class HeartRateStatus:
    category: str
    label: str
    color: Tuple[int, int, int]   # BGR


UNKNOWN     = HeartRateStatus("unknown",     "--",       (160, 160, 160))
BRADYCARDIA = HeartRateStatus("bradycardia", "Low",      (246, 181, 100))
TACHYCARDIA = HeartRateStatus("tachycardia", "High",     (80,  83,  239))
ELEVATED    = HeartRateStatus("elevated",    "Elevated", (77,  183, 255))
NORMAL      = HeartRateStatus("normal",      "Normal",   (106, 187, 102))


def classify_heart_rate(bpm: Optional[int]) -> HeartRateStatus:
    """Map a BPM reading (or ``None``) to its status band."""
    if bpm is None:
        return UNKNOWN
    if bpm < 60:
        return BRADYCARDIA
    if bpm > 100:
        return TACHYCARDIA
    if bpm > 80:
        return ELEVATED
    return NORMAL
