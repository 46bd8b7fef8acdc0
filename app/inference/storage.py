"""Versionsspeicher für Schema-Snapshots.

Append-only: Es gibt nur Lesen und bedingtes Anhängen, kein Update
und kein Delete.

Bedingtes Anhängen (Compare-and-Swap):
    INSERT ... SELECT ... WHERE MAX(version) = erwartete letzte Version

Zusätzlich ist `version` Primärschlüssel.  Von mehreren gleichzeitigen
Schreibern mit derselben erwarteten Version gewinnt genau einer; alle
anderen erhalten VersionConflictError.  Lücken in der Nummerierung
entstehen dadurch nicht.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone

import aiosqlite
from pydantic import ValidationError

from app.db.database import Database, DatabaseUnavailableError
from app.inference.exceptions import PersistenceError, VersionConflictError
from app.inference.models import FieldSchema, SchemaSnapshot
from app.logging_config import get_logger

logger = get_logger("inference")


class SchemaVersionStore:
    """Async Zugriff auf die Tabelle schema_versions.

    Verwendet die bestehende Database-Instanz (aiosqlite).

    Verwendung:
        store = SchemaVersionStore(database)
        latest = await store.get_latest()
        snapshot = await store.append(fields, total_samples=30, expected_latest=0)
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    @property
    def _conn(self) -> aiosqlite.Connection:
        """Kurzschreibweise für die DB-Connection."""
        return self._db.connection

    # =========================================================================
    # Lesen
    # =========================================================================

    async def get_latest(self) -> SchemaSnapshot | None:
        """Snapshot mit der höchsten Versionsnummer, None wenn leer."""
        try:
            cursor = await self._conn.execute(
                "SELECT * FROM schema_versions ORDER BY version DESC LIMIT 1",
            )
            row = await cursor.fetchone()
        except (aiosqlite.Error, DatabaseUnavailableError) as exc:
            raise PersistenceError(
                f"Letzte Schema-Version nicht lesbar: {exc}",
                operation="get_latest",
            ) from exc
        return self._row_to_snapshot(row) if row else None

    async def get_version(self, version: int) -> SchemaSnapshot | None:
        """Einzelnen Snapshot laden."""
        try:
            cursor = await self._conn.execute(
                "SELECT * FROM schema_versions WHERE version = ?",
                (version,),
            )
            row = await cursor.fetchone()
        except (aiosqlite.Error, DatabaseUnavailableError) as exc:
            raise PersistenceError(
                f"Schema-Version {version} nicht lesbar: {exc}",
                operation="get_version",
            ) from exc
        return self._row_to_snapshot(row) if row else None

    async def list_versions(self, limit: int | None = None) -> list[SchemaSnapshot]:
        """Alle Snapshots, neueste zuerst (optional begrenzt)."""
        sql = "SELECT * FROM schema_versions ORDER BY version DESC"
        params: tuple[int, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        try:
            cursor = await self._conn.execute(sql, params)
            rows = await cursor.fetchall()
        except (aiosqlite.Error, DatabaseUnavailableError) as exc:
            raise PersistenceError(
                f"Schema-Historie nicht lesbar: {exc}",
                operation="list_versions",
            ) from exc
        return [self._row_to_snapshot(row) for row in rows]

    # =========================================================================
    # Bedingtes Anhängen
    # =========================================================================

    async def append(
        self,
        fields: Mapping[str, FieldSchema],
        total_samples: int,
        *,
        expected_latest: int,
        notes: str | None = "auto",
    ) -> SchemaSnapshot:
        """Legt Version `expected_latest + 1` an – nur wenn sie noch frei ist.

        Insert und Commit laufen in einer Transaktion: Ein Snapshot wird
        nur zurückgegeben, wenn er auch gespeichert ist.

        Args:
            fields: Schema-Felder des Kandidaten.
            total_samples: Anzahl der untersuchten Dokumente.
            expected_latest: Beim Vergleich beobachtete letzte Version (0 = keine).
            notes: Freitext-Notiz.

        Raises:
            VersionConflictError: Ein anderer Schreiber war schneller.
            PersistenceError: Schreiben fehlgeschlagen.
        """
        target = expected_latest + 1
        fields_json = json.dumps(
            {path: entry.model_dump() for path, entry in fields.items()},
            sort_keys=True,
            ensure_ascii=False,
        )

        try:
            async with self._db.transaction() as conn:
                # Zeitstempel erst unter dem Schreib-Lock: höhere Version
                # bedeutet späteren Zeitpunkt
                created_at = datetime.now(timezone.utc)
                cursor = await conn.execute(
                    """
                    INSERT INTO schema_versions (
                        version, fields, total_samples, notes, created_at
                    )
                    SELECT ?, ?, ?, ?, ?
                    WHERE (SELECT COALESCE(MAX(version), 0) FROM schema_versions) = ?
                    """,
                    (
                        target,
                        fields_json,
                        total_samples,
                        notes,
                        created_at.isoformat(timespec="microseconds"),
                        expected_latest,
                    ),
                )
                if cursor.rowcount != 1:
                    raise VersionConflictError(expected_latest, target)
        except aiosqlite.IntegrityError as exc:
            # Anderer Prozess auf derselben Datei hat die Version belegt
            raise VersionConflictError(expected_latest, target) from exc
        except (aiosqlite.Error, DatabaseUnavailableError) as exc:
            raise PersistenceError(
                f"Schema-Version {target} konnte nicht gespeichert werden: {exc}",
                operation="append",
            ) from exc

        logger.info(
            "Schema-Version %d angelegt: %d Felder, %d Stichproben",
            target, len(fields), total_samples,
        )
        return SchemaSnapshot(
            version=target,
            fields=dict(fields),
            total_samples=total_samples,
            notes=notes,
            created_at=created_at,
        )

    @staticmethod
    def _row_to_snapshot(row: aiosqlite.Row) -> SchemaSnapshot:
        """Konvertiert eine DB-Zeile in ein SchemaSnapshot-Objekt."""
        try:
            return SchemaSnapshot(
                version=row["version"],
                fields=json.loads(row["fields"]),
                total_samples=row["total_samples"],
                notes=row["notes"],
                created_at=row["created_at"],
            )
        except (json.JSONDecodeError, ValidationError) as exc:
            raise PersistenceError(
                f"Schema-Version {row['version']} ist beschädigt: {exc}",
                operation="decode",
            ) from exc
