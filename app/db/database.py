"""SQLite State-Management für den Schema-Drift-Service.

Verwaltet die persistente Speicherung der Rohdatensätze und der
Schema-Versionen.  Nutzt aiosqlite für async Zugriff.

Schema-Migrationen erfolgen über CREATE TABLE IF NOT EXISTS.

Tabellen:
- raw_records: Unveränderliche Rohdatensätze aus der Ingestion
- schema_versions: Append-only Historie der Schema-Snapshots
  (CRUD in app.inference.storage)
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Datenklassen für typsichere Übergabe
# ---------------------------------------------------------------------------

@dataclass
class RawRecord:
    """Ein unveränderlicher Rohdatensatz aus der Ingestion.

    `payload` ist ein beliebig verschachtelter JSON-Wert, wie ihn die
    vorgelagerten Extraktoren liefern.
    """

    payload: Any
    source: str = "ingest"
    file_metadata: dict[str, Any] | None = None

    # Nur bei Lesen aus DB gefüllt
    id: int | None = None
    ingested_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-taugliche Darstellung für die API."""
        return {
            "id": self.id,
            "payload": self.payload,
            "source": self.source,
            "file_metadata": self.file_metadata,
            "ingested_at": self.ingested_at,
        }


@dataclass
class TableCounts:
    """Zähler für das Stats-Endpoint."""

    raw_records: int = 0
    schema_versions: int = 0
    sources: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Schema-Definitionen
# ---------------------------------------------------------------------------

_SCHEMA_RAW_RECORDS = """
CREATE TABLE IF NOT EXISTS raw_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    payload TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT 'ingest',
    file_metadata TEXT,
    ingested_at TIMESTAMP NOT NULL
);
"""

# version ist Primärschlüssel: pro Versionsnummer kann höchstens ein
# Snapshot existieren, auch bei mehreren Prozessen auf derselben Datei.
_SCHEMA_SCHEMA_VERSIONS = """
CREATE TABLE IF NOT EXISTS schema_versions (
    version INTEGER PRIMARY KEY CHECK (version > 0),
    fields TEXT NOT NULL,
    total_samples INTEGER NOT NULL,
    notes TEXT,
    created_at TIMESTAMP NOT NULL
);
"""

_INDEXES = [
    # Stichproben-Fenster: neueste Datensätze zuerst
    "CREATE INDEX IF NOT EXISTS idx_raw_ingested_at "
    "ON raw_records(ingested_at);",

    # Stats: verschiedene Quellen
    "CREATE INDEX IF NOT EXISTS idx_raw_source "
    "ON raw_records(source);",
]


class DatabaseUnavailableError(RuntimeError):
    """Keine offene Verbindung (initialize() fehlt oder close() war schon)."""


def utc_now_iso() -> str:
    """Aktueller Zeitpunkt als ISO-String (UTC, Mikrosekunden)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


# ---------------------------------------------------------------------------
# Database-Klasse
# ---------------------------------------------------------------------------

class Database:
    """Async SQLite-Datenbankzugriff mit Schema-Migration.

    Verwendung:
        db = Database(path)
        await db.initialize()
        ...
        await db.close()

    Oder als Context-Manager:
        async with Database(path) as db:
            ...

    Schreibzugriffe laufen über `transaction()`.  Die Verbindung wird
    von mehreren Tasks geteilt – ein Rollback darf nie die offene
    Transaktion eines anderen Tasks verwerfen, daher das Lock.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Erstellt Verbindung, setzt PRAGMAs und führt Schema-Migration aus."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(str(self._db_path))

        # WAL-Modus: Bessere Performance bei gleichzeitigen Lese-/Schreibzugriffen
        await self._connection.execute("PRAGMA journal_mode=WAL")
        # Andere Prozesse auf derselben Datei: warten statt sofort SQLITE_BUSY
        await self._connection.execute("PRAGMA busy_timeout=5000")
        self._connection.row_factory = aiosqlite.Row

        await self._migrate()
        logger.info("Datenbank initialisiert: %s", self._db_path)

    async def close(self) -> None:
        """Schließt die Datenbankverbindung."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Datenbankverbindung geschlossen")

    async def __aenter__(self) -> Database:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def connection(self) -> aiosqlite.Connection:
        """Gibt die aktive Verbindung zurück.

        Raises:
            DatabaseUnavailableError: Nicht initialisiert oder bereits geschlossen.
        """
        if self._connection is None:
            raise DatabaseUnavailableError(
                "Datenbank nicht initialisiert – "
                "await db.initialize() aufrufen"
            )
        return self._connection

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Schreib-Transaktion: Commit bei Erfolg, Rollback bei Fehler.

        Verwendung:
            async with db.transaction() as conn:
                await conn.execute("INSERT ...")
        """
        async with self._write_lock:
            conn = self.connection
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()

    # --- Schema-Migration ---

    async def _migrate(self) -> None:
        """Erstellt Tabellen und Indizes falls sie nicht existieren.

        Verwendet CREATE TABLE/INDEX IF NOT EXISTS – idempotent und
        sicher bei mehrfachem Aufruf.
        """
        conn = self.connection

        await conn.execute(_SCHEMA_RAW_RECORDS)
        await conn.execute(_SCHEMA_SCHEMA_VERSIONS)

        for idx_sql in _INDEXES:
            await conn.execute(idx_sql)

        await conn.commit()
        logger.debug("Schema-Migration abgeschlossen")

    # --- Rohdatensätze ---

    async def insert_raw_record(
        self,
        payload: Any,
        source: str = "ingest",
        file_metadata: dict[str, Any] | None = None,
    ) -> RawRecord:
        """Speichert einen Rohdatensatz.

        Args:
            payload: Beliebiger JSON-Wert.
            source: Herkunfts-Tag (z.B. "ingest", "upload").
            file_metadata: Optionale Datei-Metadaten (Name, MIME-Typ, Größe).

        Returns:
            Der gespeicherte Datensatz inkl. ID und Zeitstempel.
        """
        ingested_at = utc_now_iso()
        async with self.transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO raw_records (payload, source, file_metadata, ingested_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    json.dumps(payload, ensure_ascii=False),
                    source,
                    json.dumps(file_metadata, ensure_ascii=False)
                    if file_metadata is not None else None,
                    ingested_at,
                ),
            )
            row_id = cursor.lastrowid or 0

        logger.debug("Rohdatensatz gespeichert: id=%d, source=%s", row_id, source)
        return RawRecord(
            id=row_id,
            payload=payload,
            source=source,
            file_metadata=file_metadata,
            ingested_at=ingested_at,
        )

    async def get_recent_payloads(self, limit: int) -> list[Any]:
        """Payloads der `limit` zuletzt eingegangenen Rohdatensätze.

        Reihenfolge: neueste zuerst (bei gleichem Zeitstempel höhere ID zuerst).
        """
        cursor = await self.connection.execute(
            """
            SELECT payload FROM raw_records
            ORDER BY ingested_at DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = await cursor.fetchall()
        return [json.loads(row["payload"]) for row in rows]

    async def get_recent_raw_records(self, limit: int = 200) -> list[RawRecord]:
        """Letzte Rohdatensätze für die API, neueste zuerst."""
        cursor = await self.connection.execute(
            """
            SELECT * FROM raw_records
            ORDER BY ingested_at DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_raw_record(row) for row in rows]

    async def get_raw_record(self, record_id: int) -> RawRecord | None:
        """Einzelnen Rohdatensatz laden."""
        cursor = await self.connection.execute(
            "SELECT * FROM raw_records WHERE id = ?",
            (record_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_raw_record(row) if row else None

    async def get_table_counts(self) -> TableCounts:
        """Zähler für Rohdatensätze, Schema-Versionen und Quellen."""
        conn = self.connection

        cursor = await conn.execute("SELECT COUNT(*) FROM raw_records")
        row = await cursor.fetchone()
        raw_count = int(row[0]) if row else 0

        cursor = await conn.execute("SELECT COUNT(*) FROM schema_versions")
        row = await cursor.fetchone()
        version_count = int(row[0]) if row else 0

        cursor = await conn.execute(
            "SELECT DISTINCT source FROM raw_records ORDER BY source",
        )
        sources = [r["source"] for r in await cursor.fetchall()]

        return TableCounts(
            raw_records=raw_count,
            schema_versions=version_count,
            sources=sources,
        )

    @staticmethod
    def _row_to_raw_record(row: aiosqlite.Row) -> RawRecord:
        """Konvertiert eine DB-Zeile in ein RawRecord-Objekt."""
        metadata = row["file_metadata"]
        return RawRecord(
            id=row["id"],
            payload=json.loads(row["payload"]),
            source=row["source"],
            file_metadata=json.loads(metadata) if metadata else None,
            ingested_at=row["ingested_at"],
        )
