"""Schema-Inferenz und Versionierung.

Module:
- values: Typ-Klassifikation (ValueType)
- collector: Feld-Statistik pro Pfad (StatCollector)
- builder: Statistik → Schema-Felder, Kanonisierung
- diff: Vergleich zweier Versionen (SchemaDiff)
- storage: Append-only Versionsspeicher in SQLite
- manager: Orchestrierung inkl. Konfliktbehandlung (VersionManager)
"""

from app.inference.builder import build_fields, canonical_json, structural_signature
from app.inference.collector import FieldStat, StatCollector
from app.inference.diff import SchemaDiff, diff_fields
from app.inference.exceptions import (
    PersistenceError,
    SchemaEngineError,
    SnapshotNotFoundError,
    VersionConflictError,
)
from app.inference.manager import VersionManager
from app.inference.models import FieldSchema, SchemaSnapshot
from app.inference.storage import SchemaVersionStore
from app.inference.values import ValueType, type_tag

__all__ = [
    "FieldSchema",
    "FieldStat",
    "PersistenceError",
    "SchemaDiff",
    "SchemaEngineError",
    "SchemaSnapshot",
    "SchemaVersionStore",
    "SnapshotNotFoundError",
    "StatCollector",
    "ValueType",
    "VersionConflictError",
    "VersionManager",
    "build_fields",
    "canonical_json",
    "diff_fields",
    "structural_signature",
    "type_tag",
]
