import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import aiosqlite
import pytest

from app.config import Settings
from app.inference.exceptions import (
    PersistenceError,
    SnapshotNotFoundError,
    VersionConflictError,
)
from app.inference.manager import VersionManager
from app.inference.models import FieldSchema, SchemaSnapshot


async def test_no_raw_records_no_version(manager, store):
    assert await manager.infer_and_maybe_create_version() is None
    assert await store.get_latest() is None


async def test_first_run_creates_version_one(db, manager, ingest_all):
    await ingest_all([{"a": 1}, {"a": "x"}, {"a": 1, "b": True}])

    snapshot = await manager.infer_and_maybe_create_version()

    assert snapshot is not None
    assert snapshot.version == 1
    assert snapshot.total_samples == 3
    assert snapshot.notes == "auto"
    assert snapshot.fields == {
        "a": FieldSchema(present=3, optional=False, types=["integer", "string"]),
        "b": FieldSchema(present=1, optional=True, types=["boolean"]),
    }


async def test_unchanged_data_is_idempotent(db, manager, store, ingest_all):
    await ingest_all([{"a": 1}, {"a": 2}])

    assert await manager.infer_and_maybe_create_version() is not None
    assert await manager.infer_and_maybe_create_version() is None
    assert len(await store.list_versions()) == 1


async def test_presence_shift_alone_is_not_drift(db, manager, store, ingest_all):
    await ingest_all([{"a": 1}, {"a": 2}])
    await manager.infer_and_maybe_create_version()

    await db.insert_raw_record({"a": 3})

    assert await manager.infer_and_maybe_create_version() is None
    assert (await store.get_latest()).fields["a"].present == 2


async def test_new_field_creates_next_version(db, manager, ingest_all):
    await ingest_all([{"a": 1}])
    await manager.infer_and_maybe_create_version()

    await db.insert_raw_record({"a": 2, "b": [1, 2]})
    snapshot = await manager.infer_and_maybe_create_version()

    assert snapshot.version == 2
    diff = await manager.diff(1, 2)
    assert diff.added == ["b", "b[]"]
    assert diff.removed == []
    assert diff.changed == ["a"]


async def test_sample_window_uses_newest_records(db, manager, ingest_all):
    await ingest_all([{"old": 1}, {"new": "x"}])

    snapshot = await manager.infer_and_maybe_create_version(sample_size=1)

    assert list(snapshot.fields) == ["new"]
    assert snapshot.total_samples == 1


async def test_concurrent_runs_create_single_version(db, manager, store, ingest_all):
    await ingest_all([{"a": 1, "b": {"c": None}}, {"a": 2}])

    results = await asyncio.gather(
        *(manager.infer_and_maybe_create_version() for _ in range(10))
    )

    created = [r for r in results if r is not None]
    assert len(created) == 1
    assert [s.version for s in await store.list_versions()] == [1]


async def test_concurrent_managers_share_version_sequence(db, store, ingest_all):
    managers = [VersionManager(db, store) for _ in range(4)]
    await ingest_all([{"a": 1}])

    await asyncio.gather(*(m.infer_and_maybe_create_version() for m in managers))
    await db.insert_raw_record({"a": "x"})
    await asyncio.gather(*(m.infer_and_maybe_create_version() for m in managers))

    assert [s.version for s in await store.list_versions()] == [2, 1]


async def test_sample_read_failure_raises_persistence_error(store):
    broken_db = MagicMock()
    broken_db.get_recent_payloads = AsyncMock(
        side_effect=aiosqlite.OperationalError("disk I/O error"),
    )
    manager = VersionManager(broken_db, store)

    with pytest.raises(PersistenceError) as exc_info:
        await manager.infer_and_maybe_create_version()
    assert exc_info.value.operation == "sample"


async def test_store_failure_is_not_retried(db, ingest_all):
    await ingest_all([{"a": 1}])
    store = MagicMock()
    store.get_latest = AsyncMock(side_effect=PersistenceError("kaputt", "get_latest"))
    manager = VersionManager(db, store)

    with pytest.raises(PersistenceError):
        await manager.infer_and_maybe_create_version()
    assert store.get_latest.await_count == 1


async def test_closed_database_raises_persistence_error(db, ingest_all):
    await ingest_all([{"a": 1}])
    await db.close()

    with pytest.raises(PersistenceError) as exc_info:
        await VersionManager(db).infer_and_maybe_create_version()
    assert exc_info.value.operation == "sample"


async def test_write_failure_is_not_retried(db, ingest_all):
    await ingest_all([{"a": 1}])
    store = MagicMock()
    store.get_latest = AsyncMock(return_value=None)
    store.append = AsyncMock(side_effect=PersistenceError("Platte voll", "append"))
    manager = VersionManager(db, store)

    with pytest.raises(PersistenceError) as exc_info:
        await manager.infer_and_maybe_create_version()
    assert exc_info.value.operation == "append"
    assert store.append.await_count == 1


async def test_write_failure_leaves_history_untouched(db, store, manager, ingest_all):
    await ingest_all([{"a": 1}])
    await manager.infer_and_maybe_create_version()
    await db.insert_raw_record({"a": "x"})
    await db.connection.execute("PRAGMA query_only = ON")

    with pytest.raises(PersistenceError):
        await manager.infer_and_maybe_create_version()

    await db.connection.execute("PRAGMA query_only = OFF")
    assert [s.version for s in await store.list_versions()] == [1]


async def test_conflict_retry_rereads_latest(db, ingest_all):
    await ingest_all([{"a": 1}])
    winner = SchemaSnapshot(
        version=1,
        fields={"a": FieldSchema(present=1, optional=False, types=["integer"])},
        total_samples=1,
        notes="auto",
        created_at=datetime.now(timezone.utc),
    )
    store = MagicMock()
    store.get_latest = AsyncMock(side_effect=[None, winner])
    store.append = AsyncMock(side_effect=VersionConflictError(0, 1))
    manager = VersionManager(db, store)

    assert await manager.infer_and_maybe_create_version() is None
    assert store.get_latest.await_count == 2
    assert store.append.await_count == 1


async def test_exhausted_conflicts_return_none(db, ingest_all):
    await ingest_all([{"a": 1}])
    store = MagicMock()
    store.get_latest = AsyncMock(return_value=None)
    store.append = AsyncMock(side_effect=VersionConflictError(0, 1))
    manager = VersionManager(db, store, conflict_retries=2)

    assert await manager.infer_and_maybe_create_version() is None
    assert store.append.await_count == 2


async def test_diff_missing_version(db, manager, ingest_all):
    await ingest_all([{"a": 1}])
    await manager.infer_and_maybe_create_version()

    with pytest.raises(SnapshotNotFoundError) as exc_info:
        await manager.diff(1, 7)
    assert exc_info.value.version == 7


async def test_diff_same_version_is_empty(db, manager, ingest_all):
    await ingest_all([{"a": 1}])
    await manager.infer_and_maybe_create_version()

    assert (await manager.diff(1, 1)).is_empty


def test_from_settings(tmp_path):
    settings = Settings(
        data_dir=tmp_path,
        inference_sample_size=5,
        array_sample_limit=2,
        version_conflict_retries=4,
    )
    manager = VersionManager.from_settings(MagicMock(), settings)

    assert manager.sample_size == 5


@pytest.mark.parametrize("kwargs", [{"sample_size": 0}, {"conflict_retries": 0}])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        VersionManager(MagicMock(), MagicMock(), **kwargs)
