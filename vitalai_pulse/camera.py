"""
Webcam frame source.

Frames are stamped with the wall-clock time at which the device *grabbed*
them, before decoding, so the brightness samples fed to the estimator carry
capture times rather than the time the main loop got round to them.

A device that stops delivering frames is reported with :class:`CameraError`
instead of silently ending the stream.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraError(RuntimeError):
    """The capture device could not be opened or stopped delivering frames."""


@dataclass(frozen=True)
class CapturedFrame:
    image: np.ndarray       # BGR, H × W × 3, uint8
    timestamp_ms: int


class WebcamCamera:
    """
    Timestamped frame source over an OpenCV capture device.

    Parameters
    ----------
    resolution:
        (width, height) requested from the device.
    fps:
        Requested frame rate.  Devices may ignore it.
    flip_horizontal:
        Mirror frames left-to-right (selfie-style preview).
    camera_index:
        OpenCV device index.
    max_failed_reads:
        Consecutive failed grabs after which :meth:`frames` raises
        :class:`CameraError`.
    clock:
        Returns the current time in seconds; ``time.time`` by default.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        fps: int = 30,
        flip_horizontal: bool = False,
        camera_index: int = 0,
        max_failed_reads: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.resolution = resolution
        self.fps = fps
        self.flip_horizontal = flip_horizontal
        self.camera_index = camera_index
        self.max_failed_reads = max_failed_reads
        self._clock = clock

        self._cap: cv2.VideoCapture | None = None

    def open(self) -> None:
        """Open the device; raises :class:`CameraError` when it is unavailable."""
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"Cannot open webcam index={self.camera_index}")

        w, h = self.resolution
        requested = {
            cv2.CAP_PROP_FRAME_WIDTH: w,
            cv2.CAP_PROP_FRAME_HEIGHT: h,
            cv2.CAP_PROP_FPS: self.fps,
        }
        for prop, value in requested.items():
            if not cap.set(prop, value):
                logger.debug("Device ignored property %d=%s", prop, value)

        self._cap = cap
        logger.info(
            "Webcam %d opened (requested %dx%d @ %d fps)",
            self.camera_index, w, h, self.fps,
        )

    def close(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Webcam %d released.", self.camera_index)

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def now_ms(self) -> int:
        """Current time on the camera's clock, in milliseconds."""
        return int(self._clock() * 1000)

    def __enter__(self) -> "WebcamCamera":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def capture(self) -> CapturedFrame | None:
        """
        Grab, stamp and decode one frame.

        Returns *None* when the device fails to deliver.  Raises
        :class:`CameraError` if the camera is not open.
        """
        if self._cap is None:
            raise CameraError("Camera is not open.  Call open() first.")

        if not self._cap.grab():
            return None
        timestamp_ms = self.now_ms()
        ok, image = self._cap.retrieve()
        if not ok or image is None:
            return None
        if self.flip_horizontal:
            image = cv2.flip(image, 1)
        return CapturedFrame(image=image, timestamp_ms=timestamp_ms)

    def frames(self) -> Iterator[CapturedFrame]:
        """
        Yield captured frames until the camera is closed.

        Raises :class:`CameraError` after ``max_failed_reads`` consecutive
        failures; a successful capture resets the count.
        """
        failures = 0
        while self._cap is not None:
            captured = self.capture()
            if captured is not None:
                failures = 0
                yield captured
                continue
            failures += 1
            logger.warning(
                "Webcam %d delivered no frame (%d/%d).",
                self.camera_index, failures, self.max_failed_reads,
            )
            if failures >= self.max_failed_reads:
                raise CameraError(
                    f"Webcam {self.camera_index} failed {failures} consecutive reads"
                )
