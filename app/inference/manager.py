"""VersionManager: Stichprobe → Kandidat → Vergleich → ggf. neue Version.

Ablauf eines Inferenz-Laufs:

1. Die N zuletzt eingegangenen Rohdatensätze laden (leer → kein Lauf)
2. StatCollector über jede Payload, gemeinsame Statistik
3. SchemaBuilder erzeugt die Kandidaten-Felder
4. Mit der letzten gespeicherten Version vergleichen (strukturelle Signatur)
5. Bei Drift: Version latest + 1 bedingt anhängen

Parallele Läufe (mehrere Ingestion-Events kurz hintereinander) sind
erlaubt.  Verliert ein Lauf das Rennen um die nächste Versionsnummer,
wird die letzte Version neu gelesen und erneut verglichen – meist hat
der Gewinner bereits dasselbe Schema gespeichert und der Lauf endet
ohne neue Version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from app.db.database import DatabaseUnavailableError
from app.inference.builder import build_fields, has_drift
from app.inference.collector import DEFAULT_ARRAY_SAMPLE_LIMIT, StatCollector
from app.inference.diff import SchemaDiff, diff_fields
from app.inference.exceptions import (
    PersistenceError,
    SnapshotNotFoundError,
    VersionConflictError,
)
from app.inference.models import FieldSchema, SchemaSnapshot
from app.inference.storage import SchemaVersionStore
from app.logging_config import get_logger

if TYPE_CHECKING:
    from app.config import Settings
    from app.db.database import Database

logger = get_logger("inference")

DEFAULT_SAMPLE_SIZE = 30
DEFAULT_CONFLICT_RETRIES = 3

# Notiz für automatisch angelegte Versionen
AUTO_NOTES = "auto"


class VersionManager:
    """Orchestriert Schema-Inferenz und Versionierung.

    Verwendung:
        manager = VersionManager(database)
        snapshot = await manager.infer_and_maybe_create_version()
        if snapshot is not None:
            print(snapshot.version)

        diff = await manager.diff(1, 2)
    """

    def __init__(
        self,
        database: Database,
        store: SchemaVersionStore | None = None,
        *,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        array_sample_limit: int = DEFAULT_ARRAY_SAMPLE_LIMIT,
        conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
    ) -> None:
        """Initialisiert den Manager.

        Args:
            database: Initialisierte Database (Quelle der Rohdatensätze).
            store: Versionsspeicher; Default nutzt dieselbe Database.
            sample_size: Standard-Stichprobengröße.
            array_sample_limit: Untersuchte Elemente pro Array.
            conflict_retries: Vergleichsversuche bei Versionskonflikt.
        """
        if sample_size < 1:
            raise ValueError(f"sample_size muss >= 1 sein, nicht {sample_size}")
        if conflict_retries < 1:
            raise ValueError(
                f"conflict_retries muss >= 1 sein, nicht {conflict_retries}"
            )
        self._db = database
        self._store = store or SchemaVersionStore(database)
        self._sample_size = sample_size
        self._collector = StatCollector(array_sample_limit)
        self._conflict_retries = conflict_retries

    @classmethod
    def from_settings(cls, database: Database, settings: Settings) -> VersionManager:
        """Erzeugt den Manager mit den Werten aus der Konfiguration."""
        return cls(
            database,
            sample_size=settings.inference_sample_size,
            array_sample_limit=settings.array_sample_limit,
            conflict_retries=settings.version_conflict_retries,
        )

    @property
    def store(self) -> SchemaVersionStore:
        return self._store

    @property
    def sample_size(self) -> int:
        return self._sample_size

    # --- Inferenz ---

    async def infer_and_maybe_create_version(
        self,
        sample_size: int | None = None,
    ) -> SchemaSnapshot | None:
        """Inferiert das Schema der neuesten Rohdaten und versioniert bei Drift.

        Args:
            sample_size: Stichprobengröße; None = Standard aus dem Konstruktor.

        Returns:
            Den neu angelegten Snapshot oder None, wenn keine Rohdaten
            vorliegen oder das Schema unverändert ist.

        Raises:
            PersistenceError: Rohdaten oder Versionsspeicher nicht erreichbar.
        """
        size = self._sample_size if sample_size is None else sample_size
        if size < 1:
            raise ValueError(f"sample_size muss >= 1 sein, nicht {size}")

        try:
            payloads = await self._db.get_recent_payloads(size)
        except (aiosqlite.Error, DatabaseUnavailableError) as exc:
            raise PersistenceError(
                f"Rohdaten-Stichprobe nicht lesbar: {exc}",
                operation="sample",
            ) from exc

        if not payloads:
            logger.info("Keine Rohdatensätze vorhanden – Inferenz übersprungen")
            return None

        stats = self._collector.profile(payloads)
        candidate = build_fields(stats, len(payloads))
        logger.debug(
            "Kandidat gebaut: %d Felder aus %d Stichproben",
            len(candidate), len(payloads),
        )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(VersionConflictError),
            stop=stop_after_attempt(self._conflict_retries),
            wait=wait_random(min=0, max=0.05),
            before_sleep=_log_conflict,
            retry_error_callback=_conflicts_exhausted,
        )
        return await retrying(self._create_if_drifted, candidate, len(payloads))

    async def _create_if_drifted(
        self,
        candidate: dict[str, FieldSchema],
        total_samples: int,
    ) -> SchemaSnapshot | None:
        """Ein Vergleichs-/Anhänge-Versuch gegen die aktuell letzte Version."""
        latest = await self._store.get_latest()

        if latest is not None and not has_drift(latest.fields, candidate):
            logger.debug("Schema unverändert gegenüber Version %d", latest.version)
            return None

        expected = latest.version if latest is not None else 0
        snapshot = await self._store.append(
            candidate,
            total_samples,
            expected_latest=expected,
            notes=AUTO_NOTES,
        )
        if latest is None:
            logger.info("Erste Schema-Version angelegt (%d Felder)", len(candidate))
        else:
            logger.info(
                "Schema-Drift erkannt: Version %d → %d",
                latest.version, snapshot.version,
            )
        return snapshot

    # --- Diff ---

    async def diff(self, version_a: int, version_b: int) -> SchemaDiff:
        """Vergleicht zwei gespeicherte Versionen.

        Raises:
            SnapshotNotFoundError: Eine der Versionen existiert nicht.
            PersistenceError: Versionsspeicher nicht lesbar.
        """
        snapshot_a = await self._store.get_version(version_a)
        if snapshot_a is None:
            raise SnapshotNotFoundError(version_a)
        snapshot_b = await self._store.get_version(version_b)
        if snapshot_b is None:
            raise SnapshotNotFoundError(version_b)
        return diff_fields(snapshot_a.fields, snapshot_b.fields)


# ---------------------------------------------------------------------------
# tenacity-Callbacks
# ---------------------------------------------------------------------------

def _log_conflict(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.info(
        "Versionskonflikt (Versuch %d): %s – letzte Version wird neu gelesen",
        retry_state.attempt_number, exc,
    )


def _conflicts_exhausted(retry_state: RetryCallState) -> None:
    """Alle Versuche verloren: andere Schreiber haben das Schema bereits erfasst."""
    logger.warning(
        "Versionskonflikt nach %d Versuchen nicht aufgelöst – "
        "Lauf wird als erledigt gewertet",
        retry_state.attempt_number,
    )
    return None
