"""SchemaBuilder: Feld-Statistik → Schema-Felder, plus Kanonisierung.

Typ-Listen werden immer sortiert.  Die Iterationsreihenfolge eines
Sets ist keine verlässliche Vergleichsbasis – ohne Sortierung würde
jede Reihenfolge-Abweichung eine neue Schema-Version erzeugen.

Zwei kanonische Formen:
- structural_signature(): Pfade, optional-Flag, Typen
  → Grundlage der Drift-Erkennung
- canonical_json(): zusätzlich present
  → Grundlage des Feldvergleichs im Diff
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Union

from app.inference.collector import FieldStat
from app.inference.models import FieldSchema

# Feld-Einträge kommen als Modell (Engine) oder als dict (Altdaten, Tests)
FieldEntry = Union[FieldSchema, Mapping[str, Any]]


def build_fields(
    stats: Mapping[str, FieldStat],
    total_samples: int,
) -> dict[str, FieldSchema]:
    """Baut die Schema-Felder eines Kandidaten-Snapshots.

    Args:
        stats: Feld-Statistik eines Inferenz-Laufs (Pfad → FieldStat).
        total_samples: Anzahl der untersuchten Dokumente.

    Returns:
        Pfad → FieldSchema, nach Pfad sortiert.
    """
    return {
        path: FieldSchema(
            present=stat.occurrence_count,
            optional=stat.occurrence_count < total_samples,
            types=sorted(stat.observed_types),
        )
        for path, stat in sorted(stats.items())
    }


def canonical_field(entry: FieldEntry) -> dict[str, Any]:
    """Kanonische Form eines Feld-Eintrags: {present, optional, types (sortiert)}."""
    if isinstance(entry, FieldSchema):
        present, optional, types = entry.present, entry.optional, entry.types
    else:
        present = entry.get("present", 0)
        optional = entry.get("optional", False)
        types = entry.get("types") or []
    return {
        "present": int(present),
        "optional": bool(optional),
        "types": sorted(str(t) for t in types),
    }


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_json(fields: Mapping[str, FieldEntry]) -> str:
    """Byte-stabile Serialisierung inklusive present-Zähler."""
    return _dumps({path: canonical_field(entry) for path, entry in fields.items()})


def structural_signature(fields: Mapping[str, FieldEntry]) -> str:
    """Byte-stabile Serialisierung der Struktur (ohne present-Zähler).

    present ändert sich mit jedem rollierenden Stichproben-Fenster und
    ist keine Strukturänderung.
    """
    structure = {}
    for path, entry in fields.items():
        canonical = canonical_field(entry)
        structure[path] = {
            "optional": canonical["optional"],
            "types": canonical["types"],
        }
    return _dumps(structure)


def has_drift(
    latest: Mapping[str, FieldEntry] | None,
    candidate: Mapping[str, FieldEntry],
) -> bool:
    """True, wenn kein Vorgänger existiert oder die Struktur abweicht."""
    if latest is None:
        return True
    return structural_signature(latest) != structural_signature(candidate)
