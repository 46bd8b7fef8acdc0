"""SchemaDiffEngine: Vergleich zweier Schema-Versionen.

Reine Funktion ohne I/O.  Ergebnislisten sind alphabetisch sortiert,
damit wiederholte Aufrufe identische Antworten liefern.

    added   – Pfade nur in B
    removed – Pfade nur in A
    changed – Pfade in beiden, deren {present, optional, types} abweicht
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from app.inference.builder import FieldEntry, canonical_field


@dataclass(frozen=True)
class SchemaDiff:
    """Ergebnis eines Schema-Vergleichs."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "changed": list(self.changed),
        }


def diff_fields(
    fields_a: Mapping[str, FieldEntry],
    fields_b: Mapping[str, FieldEntry],
) -> SchemaDiff:
    """Vergleicht zwei Feld-Mappings (A = alt, B = neu)."""
    keys_a = set(fields_a)
    keys_b = set(fields_b)

    changed = [
        path
        for path in sorted(keys_a & keys_b)
        if canonical_field(fields_a[path]) != canonical_field(fields_b[path])
    ]
    return SchemaDiff(
        added=sorted(keys_b - keys_a),
        removed=sorted(keys_a - keys_b),
        changed=changed,
    )
