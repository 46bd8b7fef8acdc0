"""HTTP-Endpunkte auf dem NiceGUI-Server.

NiceGUI bringt FastAPI mit – die Routen hängen direkt an `nicegui.app`.
Die Endpunkte enthalten keine Inferenz-Logik, sie reichen nur an
IngestionService, VersionManager und SchemaVersionStore weiter.

Ingestion:
- POST /ingest                 Rohdatensatz speichern, Inferenz anstoßen
- GET  /raw, /raw/{id}         Rohdatensätze ansehen

Schema-Historie (nur lesend):
- GET  /schema/latest          Letzte Version
- GET  /schemas                Alle Versionen
- GET  /schemas/view/{v}       Einzelne Version
- GET  /schema/history         Kurzform der Historie
- GET  /schema/diff/{a}/{b}    Vergleich zweier Versionen

Betrieb:
- POST /admin/run              Inferenz sofort ausführen
- GET  /stats, /health
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import aiosqlite
from fastapi import HTTPException, Request
from nicegui import app

import app.state as state
from app.config import get_settings
from app.health import check_sqlite_writable, check_worker
from app.inference.exceptions import PersistenceError, SnapshotNotFoundError
from app.logging_config import get_logger

logger = get_logger("api")

SERVICE_VERSION = "0.1.0"


def _require(obj: Any, name: str) -> Any:
    """Liefert das Laufzeit-Objekt oder 503, wenn der Service noch startet."""
    if obj is None:
        raise HTTPException(status_code=503, detail=f"{name} nicht initialisiert")
    return obj


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

@app.post("/ingest", status_code=201)
async def ingest(request: Request, source: str | None = None) -> dict[str, Any]:
    """Speichert den JSON-Body als Rohdatensatz.

    Quelle: Query-Parameter `source`, sonst Header `X-Source`, sonst "ingest".
    Die Antwort wartet nicht auf die Schema-Inferenz.
    """
    service = _require(state.get_ingestion(), "Ingestion")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body ist kein gültiges JSON")

    resolved_source = source or request.headers.get("x-source") or "ingest"
    try:
        record = await service.ingest(payload, source=resolved_source)
    except aiosqlite.Error as exc:
        logger.error("Ingest fehlgeschlagen: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    return {"id": record.id, "msg": "ingested"}


@app.get("/raw")
async def list_raw() -> list[dict[str, Any]]:
    """Die neuesten Rohdatensätze."""
    db = _require(state.get_database(), "Datenbank")
    records = await db.get_recent_raw_records(limit=get_settings().raw_list_limit)
    return [r.to_dict() for r in records]


@app.get("/raw/{record_id}")
async def get_raw(record_id: int) -> dict[str, Any]:
    """Einzelner Rohdatensatz."""
    db = _require(state.get_database(), "Datenbank")
    record = await db.get_raw_record(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="not found")
    return record.to_dict()


# ---------------------------------------------------------------------------
# Schema-Historie
# ---------------------------------------------------------------------------

@app.get("/schema/latest")
async def schema_latest() -> dict[str, Any]:
    """Letzte Schema-Version."""
    manager = _require(state.get_version_manager(), "VersionManager")
    try:
        latest = await manager.store.get_latest()
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    if latest is None:
        raise HTTPException(status_code=404, detail="no schema yet")
    return latest.model_dump(mode="json")


@app.get("/schemas")
async def list_schemas() -> list[dict[str, Any]]:
    """Alle Schema-Versionen, neueste zuerst."""
    manager = _require(state.get_version_manager(), "VersionManager")
    try:
        snapshots = await manager.store.list_versions()
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return [s.model_dump(mode="json") for s in snapshots]


@app.get("/schemas/view/{version}")
async def view_schema(version: int) -> dict[str, Any]:
    """Einzelne Schema-Version."""
    manager = _require(state.get_version_manager(), "VersionManager")
    try:
        snapshot = await manager.store.get_version(version)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    if snapshot is None:
        raise HTTPException(status_code=404, detail="schema not found")
    return snapshot.model_dump(mode="json")


@app.get("/schema/history")
async def schema_history() -> list[dict[str, Any]]:
    """Kurzform der Historie: Version, Zeitpunkt, Stichproben, Notiz, Feldanzahl."""
    manager = _require(state.get_version_manager(), "VersionManager")
    try:
        snapshots = await manager.store.list_versions(limit=get_settings().history_limit)
    except PersistenceError as exc:
        logger.error("schema/history fehlgeschlagen: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return [s.history_entry() for s in snapshots]


@app.get("/schema/diff/{version_a}/{version_b}")
async def schema_diff(version_a: int, version_b: int) -> dict[str, Any]:
    """Vergleich zweier Versionen (A = alt, B = neu)."""
    manager = _require(state.get_version_manager(), "VersionManager")
    try:
        diff = await manager.diff(version_a, version_b)
    except SnapshotNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except PersistenceError as exc:
        logger.error("schema/diff fehlgeschlagen: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"from": version_a, "to": version_b, "diff": diff.to_dict()}


# ---------------------------------------------------------------------------
# Betrieb
# ---------------------------------------------------------------------------

@app.post("/admin/run")
async def admin_run() -> dict[str, Any]:
    """Führt einen Inferenz-Lauf synchron aus (Fehler werden gemeldet)."""
    manager = _require(state.get_version_manager(), "VersionManager")
    try:
        snapshot = await manager.infer_and_maybe_create_version()
    except PersistenceError as exc:
        logger.error("Manueller Inferenz-Lauf fehlgeschlagen: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"ok": True, "created_schema": snapshot.version if snapshot else None}


@app.get("/stats")
async def stats() -> dict[str, Any]:
    """Zähler für das Dashboard."""
    db = _require(state.get_database(), "Datenbank")
    counts = await db.get_table_counts()
    return {
        "raw_records": counts.raw_records,
        "schema_versions": counts.schema_versions,
        "sources": len(counts.sources),
    }


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health-Check-Endpoint für Docker und Monitoring.

    Gibt HTTP 200 zurück solange der Service grundsätzlich läuft.
    Ohne laufenden Worker ist der Service 'degraded': Ingestion
    funktioniert, Schema-Versionen entstehen aber nur per /admin/run.
    """
    database = check_sqlite_writable(get_settings())
    worker = check_worker(state.get_worker())

    critical_ok = database["status"] == "ok" and state.get_database() is not None
    worker_ok = worker["status"] in ("idle", "running")

    if critical_ok and worker_ok:
        overall = "healthy"
    elif critical_ok:
        overall = "degraded"
    else:
        overall = "unhealthy"

    return {
        "status": overall,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": SERVICE_VERSION,
        "checks": {"database": database, "worker": worker},
    }
