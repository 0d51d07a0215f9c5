"""Thread-safe bookkeeping for open timing spans."""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class InFlightTracker:
    """Maps metric names to the start time of their open span.

    All access goes through a single lock, so ``start``/``stop`` calls for
    the same or different names may come from any thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_progress: Dict[str, datetime] = {}

    def begin(self, name: str, at: datetime) -> None:
        """Open a span for ``name``, replacing any span already open."""
        with self._lock:
            replaced = name in self._in_progress
            self._in_progress[name] = at
        if replaced:
            logger.debug(f"Span '{name}' restarted at {at.isoformat()}")

    def end(self, name: str) -> Optional[datetime]:
        """Close the span for ``name`` and return its start time, if any."""
        with self._lock:
            return self._in_progress.pop(name, None)

    def peek(self, name: str) -> Optional[datetime]:
        with self._lock:
            return self._in_progress.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._in_progress

    def __len__(self) -> int:
        with self._lock:
            return len(self._in_progress)
