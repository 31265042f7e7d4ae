"""Widgetizer theme versioning core."""

__version__ = "0.4.0"
