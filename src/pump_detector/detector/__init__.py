"""Anomaly detection layer - Pump identification and debounce."""

from pump_detector.detector.models import Confidence, DebounceState, PumpEvent
from pump_detector.detector.pump import (
    DetectorConfig,
    DetectorConfigError,
    PumpDetector,
    WindowStats,
)

__all__ = [
    "Confidence",
    "DebounceState",
    "DetectorConfig",
    "DetectorConfigError",
    "PumpDetector",
    "PumpEvent",
    "WindowStats",
]
