"""Adaptive streaming packager with signed playback access."""

__version__ = "0.1.0"
