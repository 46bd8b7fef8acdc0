"""Pydantic-Modelle für Schema-Snapshots.

Ein Snapshot ist unveränderlich (frozen) – die Historie ist append-only
und wird ausschließlich von der Schema-Engine geschrieben.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldSchema(BaseModel):
    """Schema-Eintrag eines Feldpfads.

    present:  In wie vielen Stichproben-Dokumenten der Pfad vorkam
    optional: True, wenn der Pfad in mindestens einem Dokument fehlte
    types:    Beobachtete Typ-Tags, alphabetisch sortiert
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    present: int = Field(ge=0)
    optional: bool
    types: list[str] = []


class SchemaSnapshot(BaseModel):
    """Eine versionierte Schema-Version."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    version: int = Field(gt=0)
    fields: dict[str, FieldSchema] = {}
    total_samples: int = Field(ge=0)
    notes: str | None = None
    created_at: datetime

    @property
    def fields_count(self) -> int:
        return len(self.fields)

    def history_entry(self) -> dict[str, Any]:
        """Kurzform für die Versionshistorie (ohne Feldliste)."""
        return {
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "total_samples": self.total_samples,
            "notes": self.notes or "",
            "fields_count": self.fields_count,
        }
