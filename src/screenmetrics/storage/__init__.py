"""Durable metric storage module."""

from .base import MetricPersistenceStorage, StorageError
from .file_storage import FilePersistenceStorage
from .memory_storage import InMemoryPersistenceStorage

__all__ = [
    "MetricPersistenceStorage",
    "StorageError",
    "FilePersistenceStorage",
    "InMemoryPersistenceStorage",
]
