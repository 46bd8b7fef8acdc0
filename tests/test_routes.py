"""Endpunkte direkt aufgerufen, Laufzeit-Objekte über app.state gesetzt."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request

import app.config as config_module
import app.state as state
from app.api import routes
from app.config import Settings
from app.ingest.service import IngestionService
from app.inference.exceptions import PersistenceError
from app.inference.manager import VersionManager


def _request(body, headers=None):
    raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/ingest",
        "query_string": b"",
        "headers": [
            (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
        ],
    }

    async def receive():
        return {"type": "http.request", "body": raw, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def runtime(db, store, tmp_path, monkeypatch):
    """Service-Objekte ohne Worker (Versionen nur per /admin/run)."""
    manager = VersionManager(db, store)
    monkeypatch.setattr(config_module, "_settings", Settings(data_dir=tmp_path))
    monkeypatch.setattr(state, "database", db)
    monkeypatch.setattr(state, "version_manager", manager)
    monkeypatch.setattr(state, "worker", None)
    monkeypatch.setattr(state, "ingestion", IngestionService(db))
    return manager


async def test_ingest_returns_id(runtime, db):
    result = await routes.ingest(_request({"a": 1}))

    assert result["msg"] == "ingested"
    record = await db.get_raw_record(result["id"])
    assert record.source == "ingest"


async def test_ingest_source_precedence(runtime, db):
    by_header = await routes.ingest(_request({"a": 1}, {"X-Source": "extractor"}))
    by_query = await routes.ingest(
        _request({"a": 1}, {"X-Source": "extractor"}), source="upload",
    )

    assert (await db.get_raw_record(by_header["id"])).source == "extractor"
    assert (await db.get_raw_record(by_query["id"])).source == "upload"


async def test_ingest_rejects_invalid_json(runtime):
    with pytest.raises(HTTPException) as exc_info:
        await routes.ingest(_request(b"{kaputt"))
    assert exc_info.value.status_code == 400


async def test_service_not_ready(monkeypatch):
    monkeypatch.setattr(state, "ingestion", None)
    monkeypatch.setattr(state, "version_manager", None)

    with pytest.raises(HTTPException) as exc_info:
        await routes.ingest(_request({"a": 1}))
    assert exc_info.value.status_code == 503

    with pytest.raises(HTTPException):
        await routes.schema_history()


async def test_raw_listing(runtime):
    first = await routes.ingest(_request({"n": 1}))
    await routes.ingest(_request({"n": 2}))

    listing = await routes.list_raw()
    assert [r["payload"] for r in listing] == [{"n": 2}, {"n": 1}]
    assert (await routes.get_raw(first["id"]))["payload"] == {"n": 1}

    with pytest.raises(HTTPException) as exc_info:
        await routes.get_raw(999)
    assert exc_info.value.status_code == 404


async def test_schema_lifecycle(runtime):
    with pytest.raises(HTTPException) as exc_info:
        await routes.schema_latest()
    assert exc_info.value.status_code == 404

    await routes.ingest(_request({"a": 1, "b": True}))
    assert await routes.admin_run() == {"ok": True, "created_schema": 1}
    assert await routes.admin_run() == {"ok": True, "created_schema": None}

    await routes.ingest(_request({"a": "x"}))
    assert (await routes.admin_run())["created_schema"] == 2

    latest = await routes.schema_latest()
    assert latest["version"] == 2
    assert latest["fields"]["a"]["types"] == ["integer", "string"]

    history = await routes.schema_history()
    assert [h["version"] for h in history] == [2, 1]
    assert history[0]["fields_count"] == 2
    assert history[0]["notes"] == "auto"

    assert [s["version"] for s in await routes.list_schemas()] == [2, 1]
    assert (await routes.view_schema(1))["total_samples"] == 1

    diff = await routes.schema_diff(1, 2)
    assert diff == {
        "from": 1,
        "to": 2,
        "diff": {"added": [], "removed": [], "changed": ["a", "b"]},
    }


async def test_unknown_versions_are_404(runtime):
    with pytest.raises(HTTPException) as exc_info:
        await routes.view_schema(5)
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        await routes.schema_diff(1, 2)
    assert exc_info.value.status_code == 404


async def test_admin_run_reports_persistence_error(runtime, monkeypatch):
    broken = MagicMock()
    broken.infer_and_maybe_create_version = AsyncMock(
        side_effect=PersistenceError("Platte voll", "append"),
    )
    monkeypatch.setattr(state, "version_manager", broken)

    with pytest.raises(HTTPException) as exc_info:
        await routes.admin_run()
    assert exc_info.value.status_code == 500


async def test_admin_run_with_closed_database(runtime, db):
    await routes.ingest(_request({"a": 1}))
    await db.close()

    with pytest.raises(HTTPException) as exc_info:
        await routes.admin_run()
    assert exc_info.value.status_code == 500


async def test_stats(runtime):
    await routes.ingest(_request({"a": 1}, {"X-Source": "api"}))
    await routes.ingest(_request({"a": 2}))
    await routes.admin_run()

    assert await routes.stats() == {
        "raw_records": 2,
        "schema_versions": 1,
        "sources": 2,
    }


async def test_health_degraded_without_worker(runtime):
    result = await routes.health_check()

    assert result["status"] == "degraded"
    assert result["checks"]["database"]["status"] == "ok"
    assert result["checks"]["worker"] == {"status": "not_initialized"}


async def test_health_with_worker(runtime, monkeypatch):
    worker = MagicMock()
    worker.status.to_dict.return_value = {"status": "idle"}
    worker.pending_jobs = 0
    monkeypatch.setattr(state, "worker", worker)

    result = await routes.health_check()

    assert result["status"] == "healthy"
    assert result["checks"]["worker"] == {"status": "idle", "pending_jobs": 0}
