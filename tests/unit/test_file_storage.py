"""Unit tests for metric storage backends."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from screenmetrics.metrics.models import Metric, MetricType, Unit
from screenmetrics.storage import FilePersistenceStorage, InMemoryPersistenceStorage, StorageError
from screenmetrics.storage.file_storage import METRICS_FILE_NAME, SYNC_STATE_FILE_NAME


T0 = datetime(2025, 5, 31, 12, 0, 0, tzinfo=timezone.utc)


def make_metric(name, value=1.0, unit=Unit.SECONDS, offset_s=0):
    return Metric(
        name=name,
        type=MetricType.SCREEN_LOADING,
        value=value,
        unit=unit,
        timestamp=T0 + timedelta(seconds=offset_s),
    )


class TestFilePersistenceStorage:
    """Test the JSON file store."""

    @pytest.fixture
    def storage(self, tmp_path):
        return FilePersistenceStorage(tmp_path / "MetricsSDK")

    def test_load_missing_file_is_empty(self, storage):
        assert storage.load() == []

    def test_save_then_load_preserves_order_and_fields(self, storage):
        """Every appended metric comes back field-for-field, in append order."""
        metrics = [
            make_metric("Home", 0.25, offset_s=0),
            Metric(name="taps", type=MetricType.COUNTER, value=3, unit=Unit.NANOSECONDS, timestamp=T0),
            make_metric("Detail", 1.75, unit=Unit.MILLISECONDS, offset_s=5),
        ]
        for metric in metrics:
            storage.save(metric)

        loaded = storage.load()

        assert loaded == metrics
        assert [m.id for m in loaded] == [m.id for m in metrics]

    def test_directory_created_on_first_save(self, tmp_path):
        base_dir = tmp_path / "nested" / "dir"
        storage = FilePersistenceStorage(base_dir)

        storage.save(make_metric("A"))

        assert (base_dir / METRICS_FILE_NAME).exists()

    def test_replace_overwrites_collection(self, storage):
        for i in range(5):
            storage.save(make_metric(f"S{i}"))
        keep = storage.load()[3:]

        storage.replace(keep)

        assert storage.load() == keep

    def test_clear_all_removes_file(self, storage):
        storage.save(make_metric("A"))

        storage.clear_all()
        storage.clear_all()

        assert not storage.metrics_path.exists()
        assert storage.load() == []

    def test_corrupt_file_reads_as_empty(self, storage):
        storage.base_dir.mkdir(parents=True)
        storage.metrics_path.write_text("{not json")

        assert storage.load() == []

    def test_wrong_shape_reads_as_empty(self, storage):
        storage.base_dir.mkdir(parents=True)
        storage.metrics_path.write_text(json.dumps([{"name": "missing fields"}]))

        assert storage.load() == []

    def test_save_after_corruption_starts_fresh(self, storage):
        storage.base_dir.mkdir(parents=True)
        storage.metrics_path.write_text("garbage")

        storage.save(make_metric("A"))

        assert [m.name for m in storage.load()] == ["A"]

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")
        storage = FilePersistenceStorage(blocker / "MetricsSDK")

        with pytest.raises(StorageError):
            storage.save(make_metric("A"))

    def test_no_temp_files_left_behind(self, storage):
        for i in range(3):
            storage.save(make_metric(f"S{i}"))

        assert sorted(p.name for p in storage.base_dir.iterdir()) == [METRICS_FILE_NAME]

    def test_survives_new_instance(self, tmp_path):
        """The buffer and sync state are durable across instances."""
        first = FilePersistenceStorage(tmp_path)
        first.save(make_metric("A"))
        first.set_last_synced_timestamp(T0)

        second = FilePersistenceStorage(tmp_path)

        assert [m.name for m in second.load()] == ["A"]
        assert second.last_synced_timestamp() == T0

    def test_sync_timestamp_independent_of_metrics(self, storage):
        storage.set_last_synced_timestamp(T0)
        storage.save(make_metric("A"))

        storage.clear_all()

        assert storage.last_synced_timestamp() == T0
        assert (storage.base_dir / SYNC_STATE_FILE_NAME).exists()

    def test_missing_sync_timestamp(self, storage):
        assert storage.last_synced_timestamp() is None

    def test_corrupt_sync_timestamp(self, storage):
        storage.base_dir.mkdir(parents=True)
        storage.sync_state_path.write_text(json.dumps({"lastSyncedTimestamp": "yesterday"}))

        assert storage.last_synced_timestamp() is None

    def test_naive_sync_timestamp_stored_as_utc(self, storage):
        storage.set_last_synced_timestamp(datetime(2025, 5, 31, 12, 0, 0))

        assert storage.last_synced_timestamp() == T0

    def test_naive_sync_timestamp_on_disk_read_as_utc(self, storage):
        storage.base_dir.mkdir(parents=True)
        storage.sync_state_path.write_text(json.dumps({"lastSyncedTimestamp": "2025-05-31T12:00:00"}))

        assert storage.last_synced_timestamp() == T0
        assert storage.last_synced_timestamp().tzinfo is not None


class TestInMemoryPersistenceStorage:
    """Test the volatile store used by simulations."""

    def test_round_trip(self):
        storage = InMemoryPersistenceStorage()
        metrics = [make_metric("A", 1.0), make_metric("B", 2.0, offset_s=1)]
        for metric in metrics:
            storage.save(metric)

        assert storage.load() == metrics
        assert storage.write_count == 2

    def test_clear_and_sync_timestamp(self):
        storage = InMemoryPersistenceStorage()
        storage.save(make_metric("A"))
        storage.set_last_synced_timestamp(T0)

        storage.clear_all()

        assert storage.load() == []
        assert storage.clear_count == 1
        assert storage.last_synced_timestamp() == T0
