"""StatCollector: Feld-Statistik über verschachtelte Dokumente.

Läuft rekursiv über einen einzelnen Dokumentwert und sammelt pro
normalisiertem Feldpfad:

- wie viele Dokumente an diesem Pfad einen Wert hatten
- welche Typ-Tags dort beobachtet wurden

Pfad-Schreibweise:
    user.name              – Objekt-Schlüssel, durch Punkte getrennt
    user.addresses[].city  – Array-Elemente teilen sich einen Pfad
    value                  – Skalar/Null/Array auf oberster Ebene

Von jedem Array werden nur die ersten `array_sample_limit` Elemente
untersucht.  Breite Arrays werden damit bewusst unterabgetastet:
ein Typ, der erst ab dem vierten Element auftaucht, wird nicht erkannt.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.inference.values import ValueType, classify, type_tag

# Synthetischer Pfad für Werte ohne umschließendes Feld
ROOT_PATH = "value"

DEFAULT_ARRAY_SAMPLE_LIMIT = 3


@dataclass
class FieldStat:
    """Statistik eines Feldpfads während eines Inferenz-Laufs."""

    path: str
    occurrence_count: int = 0
    observed_types: set[str] = field(default_factory=set)


class StatCollector:
    """Sammelt Feld-Statistiken über Dokumente.

    Verwendung:
        collector = StatCollector(array_sample_limit=3)
        stats: dict[str, FieldStat] = {}
        for payload in payloads:
            collector.collect(payload, stats)
    """

    def __init__(self, array_sample_limit: int = DEFAULT_ARRAY_SAMPLE_LIMIT) -> None:
        if array_sample_limit < 1:
            raise ValueError(
                f"array_sample_limit muss >= 1 sein, nicht {array_sample_limit}"
            )
        self._array_sample_limit = array_sample_limit

    @property
    def array_sample_limit(self) -> int:
        return self._array_sample_limit

    def collect(self, value: Any, stats: dict[str, FieldStat]) -> None:
        """Aktualisiert `stats` in-place mit einem einzelnen Dokument.

        Jeder Pfad zählt pro Dokument höchstens einmal, auch wenn er über
        mehrere Array-Elemente erreicht wird.  Typ-Tags werden bei jedem
        Besuch ergänzt.
        """
        seen: set[str] = set()
        self._visit(value, None, stats, seen)

    def profile(self, values: Iterable[Any]) -> dict[str, FieldStat]:
        """Sammelt alle Dokumente in eine frische Statistik."""
        stats: dict[str, FieldStat] = {}
        for value in values:
            self.collect(value, stats)
        return stats

    # --- Rekursion ---

    def _visit(
        self,
        value: Any,
        path: str | None,
        stats: dict[str, FieldStat],
        seen: set[str],
    ) -> None:
        """Besucht einen Wert ohne eigenen Schlüssel (Wurzel oder Array-Element)."""
        kind = classify(value)
        if kind is ValueType.OBJECT:
            self._visit_members(value, path, stats, seen)
            return

        target = path or ROOT_PATH
        self._record(target, type_tag(value), stats, seen)
        if kind is ValueType.ARRAY:
            self._visit_elements(value, target, stats, seen)

    def _visit_members(
        self,
        obj: Mapping[Any, Any],
        prefix: str | None,
        stats: dict[str, FieldStat],
        seen: set[str],
    ) -> None:
        for key, child in obj.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            kind = classify(child)
            self._record(path, type_tag(child), stats, seen)

            if kind is ValueType.OBJECT:
                self._visit_members(child, path, stats, seen)
            elif kind is ValueType.ARRAY:
                self._visit_elements(child, path, stats, seen)

    def _visit_elements(
        self,
        items: Sequence[Any],
        path: str,
        stats: dict[str, FieldStat],
        seen: set[str],
    ) -> None:
        element_path = f"{path}[]"
        for item in items[: self._array_sample_limit]:
            self._visit(item, element_path, stats, seen)

    @staticmethod
    def _record(
        path: str,
        tag: str,
        stats: dict[str, FieldStat],
        seen: set[str],
    ) -> None:
        stat = stats.get(path)
        if stat is None:
            stat = stats[path] = FieldStat(path=path)
        if path not in seen:
            seen.add(path)
            stat.occurrence_count += 1
        stat.observed_types.add(tag)
