"""Datenbank-Paket: SQLite State-Management.

Stellt die Database-Klasse und zugehörige Datenklassen bereit.
"""

from app.db.database import (
    Database,
    DatabaseUnavailableError,
    RawRecord,
    TableCounts,
)

__all__ = [
    "Database",
    "DatabaseUnavailableError",
    "RawRecord",
    "TableCounts",
]
