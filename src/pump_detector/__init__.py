"""Pump Detector - short-window price anomaly monitor."""

__version__ = "0.1.0"
