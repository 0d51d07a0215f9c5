"""Abstract contract for durable metric storage."""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from ..metrics.models import Metric


class StorageError(Exception):
    """Raised when the metric collection cannot be written."""
    pass


class MetricPersistenceStorage(ABC):
    """Durable buffer for completed metrics plus the last-sync timestamp.

    The metric collection and the sync timestamp are independent slots.
    Implementations must rewrite the whole collection on every change so a
    crash between writes never corrupts metrics already committed.

    Each store carries two locks shared by everything that uses it:
    ``lock`` serializes read-modify-write sequences on the collection and
    ``export_guard`` lets only one export run against the store at a time.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._export_guard = threading.Lock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def export_guard(self) -> threading.Lock:
        return self._export_guard

    def save(self, value: Metric) -> None:
        """Append one metric to the collection.

        Raises:
            StorageError: If the updated collection could not be written.
        """
        with self._lock:
            current = self.load()
            current.append(value)
            self._write(current)

    def replace(self, values: Sequence[Metric]) -> None:
        """Overwrite the collection with exactly ``values``.

        Raises:
            StorageError: If the collection could not be written.
        """
        with self._lock:
            self._write(list(values))

    @abstractmethod
    def load(self) -> List[Metric]:
        """Return every buffered metric in insertion order.

        Missing, unreadable or corrupt data yields an empty list.
        """
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every buffered metric."""
        pass

    @abstractmethod
    def set_last_synced_timestamp(self, date: datetime) -> None:
        pass

    @abstractmethod
    def last_synced_timestamp(self) -> Optional[datetime]:
        pass

    @abstractmethod
    def _write(self, values: List[Metric]) -> None:
        """Persist the full collection, replacing what was there."""
        pass
