"""Session simulation module."""

from .session_simulator import SessionSimulator

__all__ = ["SessionSimulator"]
