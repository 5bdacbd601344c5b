"""Printer telemetry sensors and validated media tools."""

__version__ = "0.1.0"