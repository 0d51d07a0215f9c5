"""In-process metric storage for tests and simulations."""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from ..metrics.models import Metric, decode_metrics, encode_metrics
from .base import MetricPersistenceStorage

logger = logging.getLogger(__name__)


class InMemoryPersistenceStorage(MetricPersistenceStorage):
    """Volatile storage holding the encoded collection in memory.

    The collection is kept in its serialized form so saves and loads go
    through the same codec as the file-backed store.
    """

    def __init__(self) -> None:
        super().__init__()
        self._blob: Optional[bytes] = None
        self._last_synced: Optional[datetime] = None
        self.write_count = 0
        self.clear_count = 0

    def load(self) -> List[Metric]:
        if self._blob is None:
            return []
        try:
            return decode_metrics(self._blob)
        except ValidationError:
            logger.warning("Discarding corrupt in-memory metric collection")
            return []

    def _write(self, values: List[Metric]) -> None:
        self._blob = encode_metrics(values)
        self.write_count += 1

    def clear_all(self) -> None:
        with self.lock:
            self._blob = None
            self.clear_count += 1

    def set_last_synced_timestamp(self, date: datetime) -> None:
        self._last_synced = date

    def last_synced_timestamp(self) -> Optional[datetime]:
        return self._last_synced
