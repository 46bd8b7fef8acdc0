"""Scheduler – Hintergrund-Ausführung der Schema-Inferenz.

Öffentliche API:
- InferenceWorker: Queue-basierter Worker für Inferenz-Läufe
- WorkerState: Zustandsenum (stopped/idle/running)
- WorkerStatus: Aktueller Status für Health-Check und UI
"""

from app.scheduler.worker import InferenceJob, InferenceWorker, WorkerState, WorkerStatus

__all__ = [
    "InferenceJob",
    "InferenceWorker",
    "WorkerState",
    "WorkerStatus",
]
