"""Screen load time measurement engine."""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..core.events import APP_WILL_ENTER_FOREGROUND, EventSource, LocalEventBus, Subscription
from ..core.scheduler import PeriodicScheduler, ScheduledTask, ThreadingScheduler
from ..export.exporter import MetricExporter, RemoteMetricExporter
from ..export.transport import LoggingHttpClient, RequestsHttpClient
from ..metrics.models import Metric, MetricType, Unit
from ..metrics.tracker import InFlightTracker
from ..storage.base import MetricPersistenceStorage
from ..storage.file_storage import FilePersistenceStorage

logger = logging.getLogger(__name__)

DEFAULT_SYNC_THRESHOLD_S = 3600.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes are assumed to be UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ScreenLoader:
    """Measures named screen loads and keeps the buffer flushing.

    ``start``/``stop`` pairs produce one ``ScreenLoading`` metric in seconds,
    persisted through the store. A recurring timer drains the store through
    the exporter every ``threshold`` seconds, and the staleness check runs
    at construction and every time the host signals that the app returned
    to the foreground.

    Nothing raised by storage or export ever reaches the caller.
    """

    def __init__(
        self,
        storage: MetricPersistenceStorage,
        exporter: MetricExporter,
        scheduler: PeriodicScheduler,
        event_source: EventSource,
        threshold: float = DEFAULT_SYNC_THRESHOLD_S,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the engine, run the staleness check and arm the timer.

        Args:
            storage: Durable buffer metrics are saved to
            exporter: Exporter that drains ``storage``
            scheduler: Runs the recurring export
            event_source: Source of the foreground signal
            threshold: Sync interval in seconds
            clock: Returns the current time as an aware datetime
        """
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")

        self.storage = storage
        self.exporter = exporter
        self.scheduler = scheduler
        self.event_source = event_source
        self.threshold = threshold
        self.clock = clock

        self._tracker = InFlightTracker()
        self._timer_lock = threading.Lock()
        self._running_timer: Optional[ScheduledTask] = None
        self._subscription: Optional[Subscription] = None
        self._closed = False

        self.check_last_synced()
        self._setup_timer()
        self._subscription = self.event_source.subscribe(
            APP_WILL_ENTER_FOREGROUND, self.check_last_synced
        )

        logger.info(f"ScreenLoader initialized (sync threshold {threshold}s)")

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        event_source: Optional[EventSource] = None,
    ) -> "ScreenLoader":
        """Build the production wiring from a validated configuration.

        Uses file storage, a ``requests`` transport (or a logging one when
        ``export.dry_run`` is set) and a threading scheduler.
        """
        export_config = config["export"]
        storage = FilePersistenceStorage(config["storage"].get("base_dir"))
        if export_config.get("dry_run"):
            http_client = LoggingHttpClient()
        else:
            http_client = RequestsHttpClient(timeout_s=export_config["timeout_s"])
        exporter = RemoteMetricExporter(
            http_client,
            storage,
            url=export_config["url"],
            batch_size=export_config["batch_size"],
        )
        return cls(
            storage=storage,
            exporter=exporter,
            scheduler=ThreadingScheduler(),
            event_source=event_source or LocalEventBus(),
            threshold=config["sync_threshold_s"],
        )

    @property
    def in_progress(self) -> InFlightTracker:
        return self._tracker

    def start(self, name: str) -> None:
        """Open a span for ``name``; a second start replaces the first."""
        self._tracker.begin(name, self._now())

    def stop(self, name: str) -> None:
        """Close the span for ``name`` and persist its elapsed time.

        Without an open span this does nothing.
        """
        start_time = self._tracker.end(name)
        if start_time is None:
            logger.debug(f"stop('{name}') without matching start ignored")
            return

        now = self._now()
        elapsed = abs((now - start_time).total_seconds())
        self._save(Metric(
            name=name,
            type=MetricType.SCREEN_LOADING,
            value=elapsed,
            unit=Unit.SECONDS,
            timestamp=now,
        ))

    def record(self, name: str, value: float, unit: Unit = Unit.SECONDS) -> None:
        """Persist an already measured value without opening a span.

        A value or unit that cannot be stored (NaN, infinity, an unknown
        unit name) drops this metric with a warning.
        """
        try:
            metric = Metric(
                name=name,
                type=MetricType.SCREEN_LOADING,
                value=value,
                unit=unit,
                timestamp=self._now(),
            )
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Dropping metric '{name}': {e}")
            return
        self._save(metric)

    def check_last_synced(self) -> None:
        """Export early if the last sync is at least one threshold old.

        The current time is stored as the last sync time whether or not an
        export happened.
        """
        now = self._now()
        last_synced = _as_utc(self.storage.last_synced_timestamp())
        if last_synced is not None:
            elapsed = (now - last_synced).total_seconds()
            if elapsed >= self.threshold:
                logger.info(f"Last sync {elapsed:.0f}s ago, exporting out of cycle")
                self._export()
                if not self._closed:
                    self._setup_timer()
        self.storage.set_last_synced_timestamp(now)

    def close(self) -> None:
        """Stop listening for the foreground signal and cancel the timer."""
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self.event_source.unsubscribe(self._subscription)
            self._subscription = None
        with self._timer_lock:
            if self._running_timer is not None:
                self._running_timer.cancel()
                self._running_timer = None
        logger.info("ScreenLoader closed")

    def __enter__(self) -> "ScreenLoader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _now(self) -> datetime:
        return _as_utc(self.clock())

    def _save(self, metric: Metric) -> None:
        try:
            self.storage.save(metric)
        except Exception as e:
            logger.warning(f"Dropping metric '{metric.name}': {e}")
            return
        logger.debug(f"Recorded {metric.name}={metric.value:.3f} {metric.unit.value}")

    def _export(self) -> None:
        try:
            self.exporter.export()
        except Exception:
            logger.exception("Metric export failed")

    def _setup_timer(self) -> None:
        with self._timer_lock:
            if self._running_timer is not None:
                self._running_timer.cancel()
            self._running_timer = self.scheduler.schedule(self.threshold, self._export)
