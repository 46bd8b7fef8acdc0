"""Typ-Klassifikation für JSON-artige Werte.

Die Rohdaten sind untypisierte, verschachtelte Python-Werte (dict, list,
str, int, float, bool, None).  Jeder Wert wird genau einem Fall des
`ValueType`-Varianten-Typs zugeordnet; der Collector verzweigt explizit
über diesen Tag statt über verstreute isinstance-Prüfungen.

Reihenfolge der Prüfung (feste Priorität):
    None → null, Sequenz → array, Mapping → object, bool → boolean,
    ganzzahliger Zahlenwert → integer, sonstige Zahl → number,
    str → string, alles andere → Laufzeit-Typname (kleingeschrieben).

bool wird vor den Zahlen geprüft, da bool in Python von int erbt.
Floats mit ganzzahligem Wert (2.0) gelten wie in JSON als integer.
"""

from __future__ import annotations

import numbers
from collections.abc import Mapping
from enum import Enum
from typing import Any


class ValueType(str, Enum):
    """Festes Typ-Vokabular der Schema-Inferenz."""
    NULL = "null"
    ARRAY = "array"
    OBJECT = "object"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"


def classify(value: Any) -> ValueType | None:
    """Ordnet einen Wert seinem ValueType zu.

    Returns:
        Den ValueType oder None, wenn der Wert außerhalb des
        JSON-Vokabulars liegt (z.B. datetime aus einem Extraktor).
    """
    if value is None:
        return ValueType.NULL
    if isinstance(value, (list, tuple)):
        return ValueType.ARRAY
    if isinstance(value, Mapping):
        return ValueType.OBJECT
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, numbers.Integral):
        return ValueType.INTEGER
    if isinstance(value, numbers.Real):
        return ValueType.INTEGER if float(value).is_integer() else ValueType.NUMBER
    if isinstance(value, str):
        return ValueType.STRING
    return None


def type_tag(value: Any) -> str:
    """Typ-Tag eines Werts als String (für Statistik und Snapshot)."""
    kind = classify(value)
    if kind is not None:
        return kind.value
    return type(value).__name__.lower()
