"""Pulse-oximeter client: sample parsing, beat and SpO2 detection, settings and data export."""

__version__ = "0.1.0"
__all__ = ["app", "exporter", "processor", "receiver", "settings"]