"""
VitalAI Pulse – camera-based heart-rate estimation.
Place a fingertip over the webcam lens; the mean red-channel brightness of
the frame centre is sampled over time and pulses are counted to give BPM.
"""

from vitalai_pulse.estimator import HeartRateEstimate, HeartRateEstimator

__version__ = "0.1.0"
__author__ = "vitalai_pulse"

__all__ = ["HeartRateEstimate", "HeartRateEstimator"]
