"""Health-Check-Funktionen für Subsystem-Prüfungen.

Seiteneffekt-frei: Wird vom Health-Check-Endpoint in app.api.routes
importiert.
"""

from __future__ import annotations

from typing import Any

from app.config import Settings


def check_sqlite_writable(settings: Settings) -> dict[str, Any]:
    """Prüft ob das Datenverzeichnis beschreibbar ist."""
    try:
        data_dir = settings.data_dir
        data_dir.mkdir(parents=True, exist_ok=True)
        test_file = data_dir / ".write_test"
        test_file.write_text("ok")
        test_file.unlink()
        return {"status": "ok", "path": str(data_dir)}
    except OSError as e:
        return {"status": "error", "path": str(settings.data_dir), "error": str(e)}


def check_worker(worker: Any) -> dict[str, Any]:
    """Status des Inferenz-Workers (None = nicht initialisiert)."""
    if worker is None:
        return {"status": "not_initialized"}
    info = worker.status.to_dict()
    info["pending_jobs"] = worker.pending_jobs
    return info
