"""Hintergrund-Worker für die Schema-Inferenz.

Die Ingestion legt nach jedem gespeicherten Rohdatensatz einen Job in
die Queue und kehrt sofort zurück.  Der Worker läuft als asyncio-Task
und arbeitet die Jobs sequenziell ab.

Fehler der Inferenz werden geloggt und im Status festgehalten, aber
nie an die Ingestion zurückgegeben – ein kaputter Versionsspeicher darf
das Speichern neuer Rohdaten nicht verhindern.

Jobs werden zusammengefasst: Liegt bereits ein Job in der Queue, ist
ein weiterer überflüssig, da der wartende Lauf ohnehin die neuesten
Rohdaten zieht.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from app.logging_config import get_logger

if TYPE_CHECKING:
    from app.inference.manager import VersionManager

logger = get_logger("scheduler")

# Maximale Wartezeit beim Stoppen, danach wird der Task abgebrochen
STOP_TIMEOUT_SECONDS = 60.0


# ---------------------------------------------------------------------------
# Worker-Status
# ---------------------------------------------------------------------------

class WorkerState(str, Enum):
    """Mögliche Zustände des Workers."""
    STOPPED = "stopped"   # Nicht gestartet oder beendet
    IDLE = "idle"         # Wartet auf Jobs
    RUNNING = "running"   # Inferenz-Lauf aktiv


@dataclass(frozen=True)
class InferenceJob:
    """Ein angeforderter Inferenz-Lauf."""
    reason: str = "ingest"
    sample_size: int | None = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class WorkerStatus:
    """Aktueller Status des Workers für Health-Check und UI."""
    state: WorkerState = WorkerState.STOPPED
    jobs_enqueued: int = 0
    jobs_coalesced: int = 0
    runs_completed: int = 0
    runs_failed: int = 0
    versions_created: int = 0
    last_version: int | None = None
    last_run_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.state.value,
            "jobs_enqueued": self.jobs_enqueued,
            "jobs_coalesced": self.jobs_coalesced,
            "runs_completed": self.runs_completed,
            "runs_failed": self.runs_failed,
            "versions_created": self.versions_created,
            "last_version": self.last_version,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error,
        }


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------

class InferenceWorker:
    """Queue-basierter Hintergrund-Worker für VersionManager-Läufe.

    Verwendung:
        worker = InferenceWorker(manager)
        worker.start()            # Gibt asyncio.Task zurück
        worker.enqueue("ingest")  # Nicht blockierend
        ...
        await worker.stop()       # Wartet auf laufenden Job
    """

    def __init__(self, manager: VersionManager, queue_size: int = 1) -> None:
        if queue_size < 1:
            raise ValueError(f"queue_size muss >= 1 sein, nicht {queue_size}")
        self._manager = manager
        # None ist das Stop-Signal
        self._queue: asyncio.Queue[InferenceJob | None] = asyncio.Queue(maxsize=queue_size)
        self._task: asyncio.Task[None] | None = None

        self.status = WorkerStatus()

    # --- Steuerung ---

    def start(self) -> asyncio.Task[None]:
        """Startet den Worker als asyncio Background-Task.

        Raises:
            RuntimeError: Wenn der Worker bereits läuft.
        """
        if self.is_running:
            raise RuntimeError("Inferenz-Worker läuft bereits")

        self.status.state = WorkerState.IDLE
        self._task = asyncio.create_task(self._run_loop(), name="inference-worker")
        # Fehler im Task loggen statt stillschweigend verschlucken
        self._task.add_done_callback(self._on_task_done)

        logger.info("Inferenz-Worker gestartet (Queue-Tiefe %d)", self._queue.maxsize)
        return self._task

    async def stop(self) -> None:
        """Stoppt den Worker graceful.

        Wartende Jobs werden noch abgearbeitet, danach endet der Loop.
        """
        task = self._task
        if task is None or task.done():
            logger.debug("InferenceWorker.stop() aufgerufen, aber kein aktiver Task")
            return

        logger.info("Inferenz-Worker wird gestoppt...")
        try:
            await asyncio.wait_for(self._shutdown(task), timeout=STOP_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(
                "Inferenz-Worker hat nach %.0fs nicht beendet – wird abgebrochen",
                STOP_TIMEOUT_SECONDS,
            )
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.status.state = WorkerState.STOPPED
        logger.info("Inferenz-Worker gestoppt")

    async def _shutdown(self, task: asyncio.Task[None]) -> None:
        await self._queue.put(None)
        await task

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_jobs(self) -> int:
        return self._queue.qsize()

    # --- Jobs ---

    def enqueue(self, reason: str = "ingest", sample_size: int | None = None) -> bool:
        """Legt einen Inferenz-Job ab, ohne zu blockieren.

        Returns:
            True wenn eingereiht, False wenn mit einem wartenden Job
            zusammengefasst.
        """
        try:
            self._queue.put_nowait(InferenceJob(reason=reason, sample_size=sample_size))
        except asyncio.QueueFull:
            self.status.jobs_coalesced += 1
            logger.debug("Inferenz-Job (%s) zusammengefasst – Lauf bereits geplant", reason)
            return False

        self.status.jobs_enqueued += 1
        return True

    async def wait_idle(self) -> None:
        """Wartet, bis alle eingereihten Jobs abgearbeitet sind."""
        await self._queue.join()

    # --- Hauptschleife ---

    async def _run_loop(self) -> None:
        """Jobs aus der Queue holen und sequenziell ausführen."""
        logger.debug("Inferenz-Loop gestartet")
        while True:
            job = await self._queue.get()
            try:
                if job is None:
                    break
                await self._run_job(job)
            finally:
                self._queue.task_done()
        logger.debug("Inferenz-Loop beendet")

    async def _run_job(self, job: InferenceJob) -> None:
        """Führt einen Lauf aus.  Fehler werden protokolliert, nicht weitergereicht."""
        self.status.state = WorkerState.RUNNING
        try:
            snapshot = await self._manager.infer_and_maybe_create_version(job.sample_size)
        except Exception as exc:
            self.status.runs_failed += 1
            self.status.last_error = f"{type(exc).__name__}: {exc}"
            logger.exception("Inferenz-Lauf (%s) fehlgeschlagen: %s", job.reason, exc)
        else:
            self.status.runs_completed += 1
            if snapshot is not None:
                self.status.versions_created += 1
                self.status.last_version = snapshot.version
        finally:
            self.status.last_run_at = datetime.now(timezone.utc)
            self.status.state = WorkerState.IDLE

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        """Callback für den asyncio-Task: loggt unerwartete Fehler."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Inferenz-Worker unerwartet beendet: %s: %s",
                type(exc).__name__, exc,
            )
