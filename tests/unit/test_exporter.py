"""Unit tests for batch export."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from screenmetrics.export import (
    DEFAULT_EXPORT_URL,
    EXPORT_BATCH_SIZE,
    HttpClient,
    RecordingHttpClient,
    RemoteMetricExporter,
)
from screenmetrics.metrics.models import Metric, MetricType, Unit
from screenmetrics.storage import InMemoryPersistenceStorage


T0 = datetime(2025, 5, 31, 12, 0, 0, tzinfo=timezone.utc)


def make_metrics(count, prefix="Screen"):
    return [
        Metric(
            name=f"{prefix}-{i}",
            type=MetricType.SCREEN_LOADING,
            value=float(i),
            unit=Unit.SECONDS,
            timestamp=T0 + timedelta(seconds=i),
        )
        for i in range(count)
    ]


class FlakyReloadStorage(InMemoryPersistenceStorage):
    """Reads as empty once ``fail_after`` successful loads have happened."""

    def __init__(self):
        super().__init__()
        self.fail_after = None
        self.loads = 0

    def load(self):
        self.loads += 1
        if self.fail_after is not None and self.loads > self.fail_after:
            return []
        return super().load()


class TestRemoteMetricExporter:
    """Test batching, FIFO order and buffer updates."""

    @pytest.fixture
    def setup_exporter(self):
        storage = InMemoryPersistenceStorage()
        http_client = RecordingHttpClient()
        exporter = RemoteMetricExporter(http_client, storage)
        return exporter, storage, http_client

    def test_reference_batch_size(self):
        assert EXPORT_BATCH_SIZE == 101

    def test_small_buffer_is_sent_whole_and_cleared(self, setup_exporter):
        """A buffer within one batch is sent in one call and cleared."""
        exporter, storage, http_client = setup_exporter
        for metric in make_metrics(5):
            storage.save(metric)
        writes_before = storage.write_count

        result = exporter.export()

        assert result.exported == 5
        assert result.remaining == 0
        assert len(http_client.requests) == 1
        url, _ = http_client.requests[0]
        assert url == DEFAULT_EXPORT_URL
        assert [r["name"] for r in http_client.batches[0]] == [f"Screen-{i}" for i in range(5)]
        assert storage.clear_count == 1
        assert storage.write_count == writes_before
        assert storage.load() == []

    def test_exactly_one_batch_clears(self, setup_exporter):
        exporter, storage, http_client = setup_exporter
        storage.replace(make_metrics(EXPORT_BATCH_SIZE))

        result = exporter.export()

        assert result.exported == EXPORT_BATCH_SIZE
        assert storage.clear_count == 1
        assert storage.load() == []

    def test_large_buffer_keeps_tail(self, setup_exporter):
        """Only the oldest batch is sent; the rest stays buffered in order."""
        exporter, storage, http_client = setup_exporter
        metrics = make_metrics(250)
        storage.replace(metrics)

        result = exporter.export()

        assert result.exported == EXPORT_BATCH_SIZE
        assert result.remaining == 250 - EXPORT_BATCH_SIZE
        sent_ids = [r["id"] for r in http_client.batches[0]]
        assert sent_ids == [m.id for m in metrics[:EXPORT_BATCH_SIZE]]
        assert storage.load() == metrics[EXPORT_BATCH_SIZE:]
        assert storage.clear_count == 0

    def test_repeated_exports_drain_buffer(self, setup_exporter):
        exporter, storage, http_client = setup_exporter
        metrics = make_metrics(250)
        storage.replace(metrics)

        for _ in range(3):
            exporter.export()

        assert storage.load() == []
        assert [len(b) for b in http_client.batches] == [101, 101, 48]
        sent_ids = [r["id"] for batch in http_client.batches for r in batch]
        assert sent_ids == [m.id for m in metrics]

    def test_empty_buffer_sends_empty_batch_and_clears(self, setup_exporter):
        """An empty buffer still makes one transport call, followed by a clear."""
        exporter, storage, http_client = setup_exporter

        result = exporter.export()

        assert result.exported == 0
        assert result.remaining == 0
        assert http_client.batches == [[]]
        assert storage.clear_count == 1
        assert storage.write_count == 0

    def test_failed_reload_keeps_tail(self):
        """A reload that comes back empty after the send does not wipe the unsent tail."""
        metrics = make_metrics(150)
        storage = FlakyReloadStorage()
        storage.replace(metrics)
        http_client = RecordingHttpClient()
        exporter = RemoteMetricExporter(http_client, storage)

        storage.loads = 0
        storage.fail_after = 1
        result = exporter.export()
        storage.fail_after = None

        assert result.exported == EXPORT_BATCH_SIZE
        assert result.remaining == 150 - EXPORT_BATCH_SIZE
        assert storage.clear_count == 0
        assert storage.load() == metrics[EXPORT_BATCH_SIZE:]

    def test_custom_batch_size_and_url(self):
        storage = InMemoryPersistenceStorage()
        http_client = RecordingHttpClient()
        exporter = RemoteMetricExporter(
            http_client, storage, url="https://collector.example/ingest", batch_size=2
        )
        storage.replace(make_metrics(3))

        exporter.export()

        url, _ = http_client.requests[0]
        assert url == "https://collector.example/ingest"
        assert len(http_client.batches[0]) == 2
        assert len(storage.load()) == 1

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            RemoteMetricExporter(RecordingHttpClient(), InMemoryPersistenceStorage(), batch_size=0)

    def test_wire_format_fields(self, setup_exporter):
        exporter, storage, http_client = setup_exporter
        metric = make_metrics(1)[0]
        storage.save(metric)

        exporter.export()

        record = http_client.batches[0][0]
        assert set(record) == {"id", "name", "type", "value", "unit", "timestamp"}
        assert record["type"] == "ScreenLoading"
        assert record["unit"] == "seconds"
        assert record["id"] == metric.id

    def test_save_during_send_is_kept(self):
        """Metrics saved while a batch is in flight are not lost."""
        storage = InMemoryPersistenceStorage()
        late = make_metrics(1, prefix="Late")[0]

        class SavingClient(HttpClient):
            def __init__(self):
                self.sent = 0

            def perform(self, data, url):
                self.sent += 1
                storage.save(late)

        storage.replace(make_metrics(3))
        exporter = RemoteMetricExporter(SavingClient(), storage)

        result = exporter.export()

        assert result.exported == 3
        assert storage.load() == [late]

    def test_concurrent_export_is_skipped(self):
        """A second export against the same store while one is running is a no-op."""
        storage = InMemoryPersistenceStorage()
        storage.replace(make_metrics(5))
        entered = threading.Event()
        release = threading.Event()
        results = []

        class BlockingClient(HttpClient):
            def __init__(self):
                self.calls = 0

            def perform(self, data, url):
                self.calls += 1
                entered.set()
                release.wait(timeout=5)

        client = BlockingClient()
        first = RemoteMetricExporter(client, storage)
        second = RemoteMetricExporter(client, storage)

        worker = threading.Thread(target=lambda: results.append(first.export()))
        worker.start()
        assert entered.wait(timeout=5)

        skipped = second.export()
        release.set()
        worker.join(timeout=5)

        assert skipped.skipped is True
        assert client.calls == 1
        assert results[0].exported == 5
        assert storage.load() == []
