"""File-backed metric storage."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from ..metrics.models import Metric, decode_metrics, encode_metrics
from .base import MetricPersistenceStorage, StorageError

logger = logging.getLogger(__name__)

DEFAULT_BASE_DIR = Path.home() / ".screenmetrics" / "MetricsSDK"
METRICS_FILE_NAME = "custom_metrics.json"
SYNC_STATE_FILE_NAME = "sync_state.json"
SYNC_TIMESTAMP_KEY = "lastSyncedTimestamp"


def _atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temp file and ``os.replace``."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class FilePersistenceStorage(MetricPersistenceStorage):
    """Keeps the metric collection as one JSON file in ``base_dir``.

    The last-sync timestamp lives in a separate small JSON file so it can
    be updated without touching the metric collection.
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        """Initialize the storage.

        Args:
            base_dir: Directory holding the storage files. Created on first
                use. Defaults to ``~/.screenmetrics/MetricsSDK``.
        """
        super().__init__()
        self.base_dir = Path(base_dir).expanduser() if base_dir else DEFAULT_BASE_DIR
        logger.info(f"FilePersistenceStorage initialized at {self.base_dir}")

    @property
    def metrics_path(self) -> Path:
        return self.base_dir / METRICS_FILE_NAME

    @property
    def sync_state_path(self) -> Path:
        return self.base_dir / SYNC_STATE_FILE_NAME

    def _ensure_dir(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> List[Metric]:
        try:
            data = self.metrics_path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Could not read metrics file {self.metrics_path}: {e}")
            return []

        try:
            return decode_metrics(data)
        except ValidationError as e:
            logger.warning(
                f"Discarding unreadable metrics file {self.metrics_path}: "
                f"{e.error_count()} validation error(s)"
            )
            return []

    def _write(self, values: List[Metric]) -> None:
        try:
            self._ensure_dir()
            _atomic_write(self.metrics_path, encode_metrics(values))
        except OSError as e:
            raise StorageError(f"Failed to write {self.metrics_path}: {e}") from e
        logger.debug(f"Wrote {len(values)} metrics to {self.metrics_path}")

    def clear_all(self) -> None:
        with self.lock:
            try:
                self.metrics_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove metrics file {self.metrics_path}: {e}")

    def set_last_synced_timestamp(self, date: datetime) -> None:
        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)
        payload = json.dumps({SYNC_TIMESTAMP_KEY: date.isoformat()}).encode("utf-8")
        try:
            self._ensure_dir()
            _atomic_write(self.sync_state_path, payload)
        except OSError as e:
            logger.warning(f"Could not store last sync timestamp: {e}")

    def last_synced_timestamp(self) -> Optional[datetime]:
        try:
            with open(self.sync_state_path, "r", encoding="utf-8") as f:
                state = json.load(f)
            synced = datetime.fromisoformat(state[SYNC_TIMESTAMP_KEY])
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable sync state {self.sync_state_path}: {e}")
            return None
        if synced.tzinfo is None:
            synced = synced.replace(tzinfo=timezone.utc)
        return synced
