import app.config as config_module
from app.config import Settings
from app.db.database import Database
from app.inference.models import FieldSchema
from app.inference.storage import SchemaVersionStore

import trigger_schema

FIELDS = {"a": FieldSchema(present=1, optional=False, types=["integer"])}


async def test_manual_run_prints_latest_version(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(config_module, "_settings", Settings(data_dir=tmp_path))
    async with Database(tmp_path / "schema_drift.db") as db:
        await db.insert_raw_record({"a": 1})

    assert await trigger_schema.main(["trigger_schema.py"]) == 0

    out = capsys.readouterr().out
    assert "Neue Version:      v1" in out
    assert "Felder:            1" in out


async def test_missing_predecessor_is_reported(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(config_module, "_settings", Settings(data_dir=tmp_path))
    async with Database(tmp_path / "schema_drift.db") as db:
        await SchemaVersionStore(db).append(FIELDS, 1, expected_latest=0)
        # Lücke: Version 2 fehlt
        async with db.transaction() as conn:
            await conn.execute(
                "INSERT INTO schema_versions (version, fields, total_samples, created_at) "
                "VALUES (3, '{}', 0, '2030-01-01T00:00:00+00:00')"
            )

    assert await trigger_schema.main(["trigger_schema.py"]) == 1
    assert any("Schema-Version 2" in r.getMessage() for r in caplog.records)
