"""Offline persistence for a health-tracking app."""

__version__ = "0.1.0"
