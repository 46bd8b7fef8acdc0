"""Spezifische Exceptions für die Schema-Inferenz und Versionierung.

Hierarchie:
    SchemaEngineError (Basis)
    ├── PersistenceError        – Versions- oder Rohdatenspeicher nicht les-/schreibbar
    ├── VersionConflictError    – Ein paralleler Lauf hat die Zielversion bereits belegt
    └── SnapshotNotFoundError   – Angeforderte Schema-Version existiert nicht

Eine leere Stichprobe ist kein Fehler: der Manager gibt dann None zurück.
"""

from __future__ import annotations


class SchemaEngineError(Exception):
    """Basisklasse für alle Fehler der Schema-Engine."""


class PersistenceError(SchemaEngineError):
    """Lesen oder Schreiben im Speicher ist fehlgeschlagen.

    Wird an den Aufrufer von infer_and_maybe_create_version() durchgereicht.
    """

    def __init__(self, message: str, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class VersionConflictError(SchemaEngineError):
    """Die Zielversion wurde bereits von einem anderen Schreiber angelegt.

    Wird im VersionManager lokal behandelt und nie an Nutzer gemeldet.
    """

    def __init__(self, expected_latest: int, target_version: int) -> None:
        self.expected_latest = expected_latest
        self.target_version = target_version
        super().__init__(
            f"Version {target_version} bereits vergeben "
            f"(erwartete letzte Version: {expected_latest})"
        )


class SnapshotNotFoundError(SchemaEngineError):
    """Schema-Version nicht gefunden (404)."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Schema-Version {version} nicht gefunden")
