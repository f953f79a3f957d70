"""Loopcast - a shared-clock radio station."""

__version__ = "0.1.0"
