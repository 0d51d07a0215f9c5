"""HTTP transports used to ship metric batches.

Transports are fire-and-forget: ``perform`` returns nothing and never
raises, so callers cannot tell whether a batch reached the collector.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..metrics.models import decode_metrics, metric_to_dict

logger = logging.getLogger(__name__)


class HttpClient(ABC):
    """Sends an opaque payload to a destination URL."""

    @abstractmethod
    def perform(self, data: bytes, url: str) -> None:
        pass


class RequestsHttpClient(HttpClient):
    """POSTs payloads as JSON with a shared ``requests.Session``."""

    def __init__(self, session: Optional[requests.Session] = None, timeout_s: float = 5.0):
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def perform(self, data: bytes, url: str) -> None:
        try:
            response = self.session.post(
                url,
                data=data,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            logger.warning(f"Metric upload to {url} failed: {e}")
            return

        if not response.ok:
            logger.warning(f"Metric upload to {url} returned HTTP {response.status_code}")
        else:
            logger.debug(f"Uploaded {len(data)} bytes to {url}")


class LoggingHttpClient(HttpClient):
    """Dry-run transport that only logs what would be sent."""

    def perform(self, data: bytes, url: str) -> None:
        logger.info(f"Network Request for URL: {url} with data: {len(data)} bytes")


class RecordingHttpClient(HttpClient):
    """Keeps every payload in memory instead of sending it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.requests: List[Tuple[str, bytes]] = []

    def perform(self, data: bytes, url: str) -> None:
        with self._lock:
            self.requests.append((url, data))

    @property
    def batches(self) -> List[List[Dict[str, Any]]]:
        """Decoded records of every payload, one list per request."""
        with self._lock:
            payloads = [data for _, data in self.requests]
        return [[metric_to_dict(m) for m in decode_metrics(p)] for p in payloads]

    @property
    def records_sent(self) -> int:
        return sum(len(batch) for batch in self.batches)
