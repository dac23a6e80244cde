"""Differential-drive line-following robot simulator."""

__version__ = "0.1.0"
