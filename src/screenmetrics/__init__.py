"""screenmetrics: measure screen load times, buffer them durably and flush them in batches."""

from .core import APP_WILL_ENTER_FOREGROUND, LocalEventBus, SimPyScheduler, ThreadingScheduler
from .engine import ScreenLoader
from .export import RemoteMetricExporter, RequestsHttpClient
from .metrics import Metric, MetricType, Unit
from .storage import FilePersistenceStorage, InMemoryPersistenceStorage

__version__ = "0.1.0"

__all__ = [
    "APP_WILL_ENTER_FOREGROUND",
    "LocalEventBus",
    "SimPyScheduler",
    "ThreadingScheduler",
    "ScreenLoader",
    "RemoteMetricExporter",
    "RequestsHttpClient",
    "Metric",
    "MetricType",
    "Unit",
    "FilePersistenceStorage",
    "InMemoryPersistenceStorage",
]
