"""
Red-channel brightness sampler.

A fingertip pressed over the lens turns the frame centre into a uniform
reddish patch whose brightness rises and falls with each pulse of blood.
This module reduces a video frame to that single scalar: the mean red
intensity over a fixed square at the centre of the frame.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


class RedChannelSampler:
    """
    Mean red intensity over a centred square region of interest.

    Parameters
    ----------
    sample_size:
        Side length in pixels of the square ROI.  Default: 100.  The ROI is
        clipped to the frame when the frame is smaller.
    """

    def __init__(self, sample_size: int = 100) -> None:
        self.sample_size = sample_size

    def roi(self, frame_shape: Tuple[int, ...]) -> Tuple[int, int, int, int]:
        """Return ``(x, y, w, h)`` of the sampling square for a frame of *frame_shape*."""
        h, w = frame_shape[:2]
        side_w = min(self.sample_size, w)
        side_h = min(self.sample_size, h)
        x = (w - side_w) // 2
        y = (h - side_h) // 2
        return x, y, side_w, side_h

    def sample(self, frame: np.ndarray) -> float:
        """
        Return the mean red intensity of the ROI in *frame*.

        Parameters
        ----------
        frame:
            BGR image array (H × W × 3, uint8).
        """
        if frame.ndim != 3 or frame.shape[2] < 3:
            raise ValueError(
                f"Expected a BGR frame of shape (H, W, 3), got {frame.shape}"
            )
        x, y, w, h = self.roi(frame.shape)
        patch = frame[y:y + h, x:x + w, 2]   # channel 2 = Red in BGR
        return float(patch.mean(dtype=np.float64))
