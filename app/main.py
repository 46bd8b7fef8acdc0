"""Einstiegspunkt des Schema-Drift-Service.

Startet den NiceGUI-Server mit den HTTP-Endpunkten aus app.api.routes.
NiceGUI bringt FastAPI/Uvicorn mit – kein separater Server nötig.

Lifecycle:
1. startup()        – Logging, Config-Validierung (synchron)
2. async_startup()  – Datenbank, VersionManager, Worker, Ingestion
3. ... Server läuft ...
4. shutdown()       – Worker stoppen, Datenbank schließen
"""

import sys

from nicegui import app, ui

from app.config import get_settings
from app.logging_config import get_logger, setup_logging
import app.state as state

logger = get_logger("app")


# --- Startup / Shutdown ---

def startup() -> None:
    """Wird beim Serverstart ausgeführt – initialisiert Logging und prüft Config.

    Synchroner Handler: Läuft vor async_startup().
    """
    try:
        settings = get_settings()
    except Exception as e:
        # Ohne gültige Config kann der Container nicht starten
        print(f"FATAL: Konfigurationsfehler – {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        log_level=settings.log_level.value,
        log_dir=settings.log_dir,
    )

    logger.info("=" * 60)
    logger.info("Schema-Drift-Service v0.1.0 startet")
    logger.info("=" * 60)
    logger.info("Stichprobengröße: %d", settings.inference_sample_size)
    logger.info("Array-Elemente je Array: %d", settings.array_sample_limit)
    logger.info("Konflikt-Wiederholungen: %d", settings.version_conflict_retries)
    logger.info("Log-Level: %s", settings.log_level.value)
    logger.info("Datenverzeichnis: %s", settings.data_dir)


async def async_startup() -> None:
    """Asynchrone Initialisierung: DB, VersionManager, Worker, Ingestion.

    Wird nach startup() ausgeführt, wenn der Event-Loop bereits läuft.
    Ohne Datenbank bleibt der Service erreichbar, /health meldet dann
    'unhealthy'.
    """
    settings = get_settings()

    try:
        from app.db.database import Database

        state.database = Database(settings.db_path)
        await state.database.initialize()
        logger.info("SQLite-Datenbank initialisiert: %s", settings.db_path)
    except Exception as exc:
        logger.error("Datenbank konnte nicht initialisiert werden: %s", exc)
        state.database = None
        return

    from app.inference.manager import VersionManager
    from app.ingest.service import IngestionService
    from app.scheduler.worker import InferenceWorker

    state.version_manager = VersionManager.from_settings(state.database, settings)

    try:
        state.worker = InferenceWorker(
            state.version_manager,
            queue_size=settings.inference_queue_size,
        )
        state.worker.start()
        logger.info("Inferenz-Worker gestartet")
    except Exception as exc:
        # Ingestion läuft auch ohne Worker, Versionen dann nur per /admin/run
        logger.error("Inferenz-Worker konnte nicht gestartet werden: %s", exc)
        state.worker = None

    state.ingestion = IngestionService(state.database, worker=state.worker)
    logger.info("IngestionService bereit")


async def shutdown() -> None:
    """Graceful Shutdown: Worker stoppen, Datenbank schließen.

    Reihenfolge:
    1. Worker stoppen (wartet auf laufenden Inferenz-Lauf)
    2. Datenbank schließen
    """
    logger.info("Shutdown eingeleitet...")

    state.ingestion = None

    if state.worker is not None:
        try:
            await state.worker.stop()
            logger.info("Inferenz-Worker gestoppt")
        except Exception as exc:
            logger.error("Fehler beim Stoppen des Workers: %s", exc)
        state.worker = None

    state.version_manager = None

    if state.database is not None:
        try:
            await state.database.close()
            logger.info("Datenbank geschlossen")
        except Exception as exc:
            logger.error("Fehler beim Schließen der Datenbank: %s", exc)
        state.database = None

    logger.info("=" * 60)
    logger.info("Schema-Drift-Service beendet")
    logger.info("=" * 60)


app.on_startup(startup)
app.on_startup(async_startup)
app.on_shutdown(shutdown)


# --- HTTP-Endpunkte und UI-Seiten registrieren ---
# Muss vor ui.run() passieren, damit die Routen beim Server-Start
# bekannt sind.
from app.api import routes  # noqa: E402,F401
from app.ui import register_pages  # noqa: E402

register_pages()


# --- Haupteinstiegspunkt ---

def main() -> None:
    """Startet den NiceGUI-Server."""
    settings = get_settings()
    ui.run(
        host=settings.host,
        port=settings.port,
        title="Schema Drift",
        # Kein automatisches Browser-Öffnen im Container
        show=False,
        # Reload nur in Entwicklung, nicht in Produktion
        reload=False,
        favicon=None,
    )


if __name__ == "__main__":
    main()
