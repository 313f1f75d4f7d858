#!/usr/bin/env python3
"""
VitalAI heart-rate monitor – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --resolution WxH     Camera resolution (default: 640x480)
    --fps INT            Target frame rate  (default: 30)
    --interval-ms INT    Sampling cadence in milliseconds (default: 33)
    --calibration FLOAT  Calibration period in seconds (default: 5)
    --no-flip            Disable horizontal mirror
    --camera-index INT   OpenCV camera index (default: 0)
    --save PATH          Save annotated video to file (optional)
    --headless           Run without display window (log BPM to stdout)

Keyboard shortcuts (when a window is open)
------------------------------------------
    q / ESC  – quit
    r        – restart the monitoring session
    s        – save a single annotated frame as PNG
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import cv2

from vitalai_pulse.camera import CameraError, WebcamCamera
from vitalai_pulse.classification import classify_heart_rate
from vitalai_pulse.estimator import HeartRateEstimator
from vitalai_pulse.session import MonitoringSession, SessionStatus
from vitalai_pulse.visualizer import Visualizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("vitalai_pulse")

WINDOW_NAME = "VitalAI Heart Rate Monitor"


def next_deadline(deadline_ms: int, now_ms: int, interval_ms: int) -> int:
    """
    Advance the sampling deadline by one interval.

    The deadline moves on a fixed grid so that frames arriving a little early
    are not skipped; after a stall it catches up to *now_ms*.
    """
    return max(deadline_ms + interval_ms, now_ms)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fingertip heart-rate monitor via webcam (PPG peak counting)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--resolution", default="640x480",
                        help="Camera resolution, e.g. 640x480")
    parser.add_argument("--fps", type=int, default=30,
                        help="Target capture frame rate")
    parser.add_argument("--interval-ms", type=int, default=33,
                        help="Sampling / analysis cadence in milliseconds")
    parser.add_argument("--calibration", type=float, default=5.0,
                        help="Calibration period in seconds before sampling starts")
    parser.add_argument("--no-flip", action="store_true",
                        help="Disable horizontal image flip")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--save", type=Path, default=None,
                        help="Save annotated video to this file path")
    parser.add_argument("--headless", action="store_true",
                        help="No display window; log BPM to stdout only")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 640x480.")
        return 1
    if args.interval_ms <= 0:
        logger.error("--interval-ms must be positive.")
        return 1

    resolution = (res_w, res_h)

    camera = WebcamCamera(
        resolution=resolution,
        fps=args.fps,
        flip_horizontal=not args.no_flip,
        camera_index=args.camera_index,
    )
    session = MonitoringSession(
        estimator=HeartRateEstimator(),
        calibration_ms=int(args.calibration * 1000),
        on_status_change=lambda s: logger.info("Session status: %s", s.value),
    )
    vis = Visualizer(resolution=resolution, show_fps=not args.headless)

    try:
        camera.open()
    except CameraError as exc:
        session.fail("Camera access failed. Check that a webcam is connected and free.")
        logger.error("%s", exc)
        return 1

    writer: cv2.VideoWriter | None = None
    if args.save:
        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        writer = cv2.VideoWriter(str(args.save), fourcc, args.fps, resolution)
        logger.info("Saving video to %s", args.save)

    logger.info("Place your fingertip over the camera lens.  Press 'q' or ESC to quit.")

    if not args.headless:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(WINDOW_NAME, res_w, res_h)

    exit_code = 0
    session.start(camera.now_ms())
    next_sample_ms: int | None = None
    next_log_ms = 0

    try:
        for captured in camera.frames():
            frame, now = captured.image, captured.timestamp_ms
            if next_sample_ms is None or now >= next_sample_ms:
                session.process_frame(frame, now)
                next_sample_ms = next_deadline(
                    now if next_sample_ms is None else next_sample_ms,
                    now,
                    args.interval_ms,
                )

            bpm = session.heart_rate
            annotated = vis.draw(
                frame,
                bpm=bpm,
                status=session.status,
                roi=session.sampler.roi(frame.shape),
                calibration_progress=session.calibration_progress,
                measurement_seconds=session.measurement_seconds,
                history=session.history,
                error=session.error,
            )

            if writer is not None:
                writer.write(annotated)

            if args.headless and now >= next_log_ms:
                ts = time.strftime("%H:%M:%S")
                if session.status is SessionStatus.CALIBRATING:
                    print(f"[{ts}] Calibrating… {session.calibration_progress}%")
                elif bpm is not None:
                    print(f"[{ts}] BPM={bpm}  ({classify_heart_rate(bpm).label})  "
                          f"t={session.measurement_seconds}s")
                else:
                    print(f"[{ts}] BPM=--  waiting for a stable signal…")
                next_log_ms = now + 1000

            if not args.headless:
                cv2.imshow(WINDOW_NAME, annotated)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):          # q or ESC
                    logger.info("Quit requested by user.")
                    break
                elif key == ord("r"):
                    session.stop()
                    session.start(camera.now_ms())
                    next_sample_ms = None
                elif key == ord("s"):
                    fname = f"snapshot_{int(time.time())}.png"
                    cv2.imwrite(fname, annotated)
                    logger.info("Saved snapshot: %s", fname)

    except CameraError as exc:
        session.fail("Camera stopped delivering frames.")
        logger.error("%s", exc)
        exit_code = 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        if session.is_active:
            session.stop()
        camera.close()
        if writer is not None:
            writer.release()
        if not args.headless:
            cv2.destroyAllWindows()

    return exit_code


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
