"""Gemeinsame Fixtures: frische SQLite-Datenbank pro Test."""

from __future__ import annotations

import pytest
import pytest_asyncio

from app.db.database import Database
from app.inference.manager import VersionManager
from app.inference.storage import SchemaVersionStore


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(tmp_path / "test.db")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def store(db):
    return SchemaVersionStore(db)


@pytest.fixture
def manager(db, store):
    return VersionManager(db, store, sample_size=30)


@pytest.fixture
def ingest_all(db):
    """Speichert Payloads der Reihe nach als Rohdatensätze."""

    async def _ingest(payloads: list) -> None:
        for payload in payloads:
            await db.insert_raw_record(payload)

    return _ingest
