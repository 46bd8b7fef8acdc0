"""Globaler Laufzeit-Zustand des Service.

Dieses Modul enthält ausschließlich die Referenzen auf Laufzeit-Objekte
und Getter-Funktionen.  Es hat KEINE Seiteneffekte beim Import –
kein Logging, kein NiceGUI, keine Registrierungen.

`app.main` wird als `__main__` geladen.  Ein späterer
`from app.main import ...` würde das Modul erneut ausführen und dabei
`app.on_startup()` doppelt registrieren.  Routen und UI-Seiten holen
ihre Objekte daher von hier.
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Laufzeit-Objekte (werden von main.async_startup() gesetzt)
# ---------------------------------------------------------------------------

database: Any = None            # Database | None
version_manager: Any = None     # VersionManager | None
worker: Any = None              # InferenceWorker | None
ingestion: Any = None           # IngestionService | None


# ---------------------------------------------------------------------------
# Getter-Funktionen (für Routen, UI-Module und Health-Check)
# ---------------------------------------------------------------------------

def get_database() -> Any:
    """Gibt die Database-Instanz zurück."""
    return database


def get_version_manager() -> Any:
    """Gibt den VersionManager zurück."""
    return version_manager


def get_worker() -> Any:
    """Gibt den InferenceWorker zurück."""
    return worker


def get_ingestion() -> Any:
    """Gibt den IngestionService zurück."""
    return ingestion
