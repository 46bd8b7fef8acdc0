#!/usr/bin/env python3
"""Manueller Trigger für einen Schema-Inferenz-Lauf.

Aufruf im Container:
  python3 /app/trigger_schema.py [STICHPROBENGRÖSSE]

Öffnet die Datenbank aus den Environment-Variablen, führt einen
Inferenz-Lauf durch und gibt die letzte Version samt Diff zur
Vorgängerversion aus.
"""
import asyncio
import logging
import sys

# Logging auf INFO damit man den Fortschritt sieht
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("trigger_schema")


async def main(argv: list[str]) -> int:
    from app.config import get_settings
    from app.db.database import Database
    from app.inference.exceptions import SchemaEngineError
    from app.inference.manager import VersionManager

    settings = get_settings()
    sample_size = int(argv[1]) if len(argv) > 1 else None

    async with Database(settings.db_path) as db:
        logger.info("Datenbank geöffnet: %s", settings.db_path)
        manager = VersionManager.from_settings(db, settings)

        logger.info("Starte Inferenz-Lauf (manuell)...")
        diff = None
        try:
            created = await manager.infer_and_maybe_create_version(sample_size)
            latest = await manager.store.get_latest()
            if latest is not None and latest.version > 1:
                diff = await manager.diff(latest.version - 1, latest.version)
        except SchemaEngineError as exc:
            logger.error("Inferenz fehlgeschlagen: %s", exc)
            return 1

        print("\n" + "=" * 60)
        if created is not None:
            print(f"Neue Version:      v{created.version}")
        else:
            print("Neue Version:      – (keine Rohdaten oder kein Drift)")

        if latest is None:
            print("Noch keine Schema-Version gespeichert.")
            print("=" * 60)
            return 0

        print(f"Letzte Version:    v{latest.version} ({latest.created_at.isoformat()})")
        print(f"Stichprobe:        {latest.total_samples}")
        print(f"Felder:            {latest.fields_count}")
        print("=" * 60)

        for path, entry in latest.fields.items():
            flag = "?" if entry.optional else " "
            print(f"  {flag} {path:<40} {'|'.join(entry.types)}  ({entry.present})")

        if diff is not None:
            print(f"\nDiff v{latest.version - 1} → v{latest.version}:")
            for label, paths in (
                ("+", diff.added), ("-", diff.removed), ("~", diff.changed),
            ):
                for path in paths:
                    print(f"  {label} {path}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv)))
