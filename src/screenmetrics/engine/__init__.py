"""Measurement engine module."""

from .screen_loader import DEFAULT_SYNC_THRESHOLD_S, ScreenLoader

__all__ = ["DEFAULT_SYNC_THRESHOLD_S", "ScreenLoader"]
