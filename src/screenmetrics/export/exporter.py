"""Batch export of buffered metrics."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..metrics.models import encode_metrics
from ..storage.base import MetricPersistenceStorage, StorageError
from .transport import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_URL = "http://test.metrics.com"

# Records 0 through 100 inclusive go out per export.
EXPORT_BATCH_SIZE = 101


@dataclass
class ExportResult:
    """Outcome of one export pass."""

    exported: int = 0
    remaining: int = 0
    skipped: bool = False


class MetricExporter(ABC):
    @abstractmethod
    def export(self) -> ExportResult:
        pass


class RemoteMetricExporter(MetricExporter):
    """Drains the oldest buffered metrics to a remote collector.

    Delivery is at-most-once and unconfirmed: once a batch has been handed
    to the transport it is removed from the buffer, whether or not it ever
    reached the collector. Nothing is retried.
    """

    def __init__(
        self,
        http_client: HttpClient,
        storage: MetricPersistenceStorage,
        url: str = DEFAULT_EXPORT_URL,
        batch_size: int = EXPORT_BATCH_SIZE,
    ):
        """Initialize the exporter.

        Args:
            http_client: Transport used to send each batch
            storage: Store to drain
            url: Collector endpoint
            batch_size: Maximum number of records sent per export
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.http_client = http_client
        self.storage = storage
        self.url = url
        self.batch_size = batch_size

    def export(self) -> ExportResult:
        """Send one batch and drop it from the buffer.

        Only one export runs per store at a time; a call that finds another
        export in progress returns immediately with ``skipped`` set.
        """
        guard = self.storage.export_guard
        if not guard.acquire(blocking=False):
            logger.debug("Export already in progress, skipping")
            return ExportResult(skipped=True)

        try:
            return self._export_batch()
        finally:
            guard.release()

    def _export_batch(self) -> ExportResult:
        all_metrics = self.storage.load()
        batch = all_metrics[: self.batch_size]
        tail = all_metrics[self.batch_size:]
        if not batch:
            logger.debug("No buffered metrics, sending an empty batch")
        self.http_client.perform(encode_metrics(batch), self.url)

        # Saves may have landed while the batch was in flight, so the
        # remainder is recomputed from the current collection.
        exported_ids = {m.id for m in batch}
        with self.storage.lock:
            current = self.storage.load()
            if exported_ids and exported_ids.isdisjoint(m.id for m in current):
                # The reload lost the batch just sent; keep the tail read before sending.
                known_ids = {m.id for m in tail}
                current = tail + [m for m in current if m.id not in known_ids]
            remaining = [m for m in current if m.id not in exported_ids]
            if remaining:
                try:
                    self.storage.replace(remaining)
                except StorageError as e:
                    logger.warning(f"Could not drop exported batch from buffer: {e}")
            else:
                self.storage.clear_all()

        logger.info(f"Exported {len(batch)} metrics to {self.url}, {len(remaining)} remaining")
        return ExportResult(exported=len(batch), remaining=len(remaining))
