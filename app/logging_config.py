"""Logging für den Schema-Drift-Service.

Alle Module loggen unter `schema_drift.<komponente>`:

    app        Lifecycle, UI
    api        HTTP-Endpunkte
    ingest     Rohdaten-Eingang
    inference  Stichprobe, Drift-Erkennung, Versionsspeicher
    scheduler  Inferenz-Worker

Ausgabe geht immer nach stdout (Container-Logs) und optional in eine
rotierende Datei unter `log_dir`.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


ROOT_LOGGER_NAME = "schema_drift"

COMPONENTS = ("app", "api", "ingest", "inference", "scheduler")

LOG_FILE_NAME = "schema_drift.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 3 Backups à 5 MB
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

# Fremd-Logger, die unterhalb von WARNING nur Rauschen liefern
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "aiosqlite", "nicegui", "tenacity")


def _stdout_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    return handler


def _file_handler(log_dir: Path, formatter: logging.Formatter) -> logging.Handler:
    """Rotierende Log-Datei; legt das Verzeichnis bei Bedarf an.

    Raises:
        OSError: Verzeichnis oder Datei nicht beschreibbar.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> None:
    """Richtet den `schema_drift`-Logger ein.

    Mehrfacher Aufruf ersetzt die Handler, statt sie zu verdoppeln.

    Args:
        log_level: DEBUG, INFO, WARNING oder ERROR (unbekannt → INFO).
        log_dir: Verzeichnis der Log-Datei; None schreibt nur nach stdout.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    service_logger = logging.getLogger(ROOT_LOGGER_NAME)
    service_logger.setLevel(level)

    for old in list(service_logger.handlers):
        service_logger.removeHandler(old)
        old.close()

    service_logger.addHandler(_stdout_handler(formatter))

    if log_dir is not None:
        try:
            service_logger.addHandler(_file_handler(log_dir, formatter))
        except OSError as exc:
            service_logger.warning(
                "Log-Datei in %s nicht anlegbar (%s) – nur stdout aktiv", log_dir, exc,
            )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(component: str) -> logging.Logger:
    """Logger `schema_drift.<component>` für eine der COMPONENTS."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
