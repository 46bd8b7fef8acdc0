"""Ingestion: Rohdatensatz speichern, Inferenz anstoßen.

Der Schreibpfad ist von der Inferenz entkoppelt: nach dem Speichern wird
nur ein Job beim Worker abgelegt.  Ob der Inferenz-Lauf später gelingt,
hat keinen Einfluss auf das Ergebnis von ingest().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.logging_config import get_logger

if TYPE_CHECKING:
    from app.db.database import Database, RawRecord
    from app.scheduler.worker import InferenceWorker

logger = get_logger("ingest")

DEFAULT_SOURCE = "ingest"


class IngestionService:
    """Speichert Rohdatensätze und meldet sie dem Inferenz-Worker.

    Verwendung:
        service = IngestionService(database, worker)
        record = await service.ingest({"a": 1}, source="api")
    """

    def __init__(
        self,
        database: Database,
        worker: InferenceWorker | None = None,
    ) -> None:
        """Initialisiert den Service.

        Args:
            database: Initialisierte Database.
            worker: Optionaler Inferenz-Worker.  Ohne Worker wird nur
                gespeichert (z.B. beim Massenimport).
        """
        self._db = database
        self._worker = worker

    async def ingest(
        self,
        payload: Any,
        source: str | None = None,
        file_metadata: dict[str, Any] | None = None,
    ) -> RawRecord:
        """Speichert einen Rohdatensatz und reiht einen Inferenz-Job ein.

        Raises:
            aiosqlite.Error: Der Rohdatensatz konnte nicht gespeichert werden.
        """
        record = await self._db.insert_raw_record(
            payload,
            source=(source or DEFAULT_SOURCE).strip() or DEFAULT_SOURCE,
            file_metadata=file_metadata,
        )
        self._notify_worker(record)
        return record

    def _notify_worker(self, record: RawRecord) -> None:
        """Reicht einen Job an den Worker; Fehler hier blockieren nie den Schreibpfad."""
        if self._worker is None:
            return
        try:
            self._worker.enqueue(reason=f"ingest:{record.id}")
        except Exception as exc:
            logger.error(
                "Inferenz-Job für Datensatz %s nicht eingereiht: %s", record.id, exc,
            )
