"""Schema-Historie – Startseite des Schema-Drift-Service.

Zeigt:
- Worker-Status und Zähler (Rohdatensätze, Versionen, Quellen)
- Alle Schema-Versionen als Tabelle
- Diff zweier ausgewählter Versionen (hinzugefügt/entfernt/geändert)
"""

from __future__ import annotations

from typing import Any

from nicegui import ui

from app.inference.exceptions import SchemaEngineError
from app.logging_config import get_logger
from app.ui.layout import page_layout, worker_state_display

logger = get_logger("app")


# ---------------------------------------------------------------------------
# Daten laden
# ---------------------------------------------------------------------------

async def load_history_data() -> dict[str, Any]:
    """Lädt Zähler, Worker-Status und Historie.

    Fehlerresistent: Bei DB-Problemen bleiben die Fallback-Werte stehen.
    """
    from app.config import get_settings
    from app.state import get_database, get_version_manager, get_worker

    data: dict[str, Any] = {
        "worker": None,
        "raw_records": 0,
        "schema_versions": 0,
        "sources": 0,
        "history": [],
    }

    worker = get_worker()
    if worker is not None:
        data["worker"] = worker.status

    db = get_database()
    manager = get_version_manager()
    if db is None or manager is None:
        return data

    try:
        counts = await db.get_table_counts()
        data["raw_records"] = counts.raw_records
        data["schema_versions"] = counts.schema_versions
        data["sources"] = len(counts.sources)
        snapshots = await manager.store.list_versions(limit=get_settings().history_limit)
        data["history"] = [s.history_entry() for s in snapshots]
    except Exception as exc:
        logger.warning("Historie konnte nicht geladen werden: %s", exc)

    return data


def history_rows(history: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Tabellenzeilen aus den Historien-Einträgen."""
    rows = []
    for entry in history:
        ts_raw = entry.get("created_at") or ""
        rows.append({
            "version": entry["version"],
            "created_at": ts_raw[:19].replace("T", " ") if ts_raw else "–",
            "total_samples": entry["total_samples"],
            "fields_count": entry["fields_count"],
            "notes": entry.get("notes") or "–",
        })
    return rows


# ---------------------------------------------------------------------------
# UI-Komponenten
# ---------------------------------------------------------------------------

def _render_worker_status(worker_status: Any | None) -> None:
    with ui.card().classes("w-full"):
        ui.label("Inferenz-Worker").classes("text-sm text-gray-500 font-medium")

        if worker_status is None:
            ui.label("Nicht initialisiert").classes("text-gray-400 italic")
            return

        style = worker_state_display(worker_status.state.value)
        with ui.row().classes("items-center gap-2 mt-1"):
            ui.icon(style["icon"]).classes(f"{style['color']} text-2xl")
            ui.label(style["label"]).classes(f"{style['color']} text-lg font-semibold")

        with ui.column().classes("gap-1 mt-2 text-sm text-gray-600"):
            with ui.row().classes("gap-4"):
                ui.label(f"Läufe: {worker_status.runs_completed}")
                ui.label(f"Fehler: {worker_status.runs_failed}")
                ui.label(f"Zusammengefasst: {worker_status.jobs_coalesced}")
            if worker_status.last_version is not None:
                ui.label(f"Zuletzt erzeugt: v{worker_status.last_version}")
            if worker_status.last_error:
                ui.label(f"Letzter Fehler: {worker_status.last_error}").classes(
                    "text-red-600 text-xs"
                )


def _render_counter_cards(data: dict[str, Any]) -> None:
    with ui.row().classes("w-full gap-4 flex-wrap items-stretch"):
        for label, key in [
            ("Rohdatensätze", "raw_records"),
            ("Schema-Versionen", "schema_versions"),
            ("Quellen", "sources"),
        ]:
            with ui.card().classes("flex-1 min-w-48 h-full"):
                ui.label(label).classes("text-sm text-gray-500")
                ui.label(str(data[key])).classes("text-3xl font-bold text-gray-800")


def _render_history_table(history: list[dict[str, Any]]) -> None:
    with ui.card().classes("w-full"):
        ui.label("Versionen").classes("text-sm text-gray-500 font-medium mb-2")

        if not history:
            ui.label("Noch keine Schema-Version erzeugt.").classes(
                "text-gray-400 italic"
            )
            return

        columns = [
            {"name": "version", "label": "Version", "field": "version",
             "align": "left", "sortable": True},
            {"name": "created_at", "label": "Erstellt", "field": "created_at",
             "align": "left", "sortable": True},
            {"name": "total_samples", "label": "Stichprobe", "field": "total_samples",
             "align": "right"},
            {"name": "fields_count", "label": "Felder", "field": "fields_count",
             "align": "right"},
            {"name": "notes", "label": "Notiz", "field": "notes", "align": "left"},
        ]
        table = ui.table(
            columns=columns,
            rows=history_rows(history),
            row_key="version",
            pagination={"rowsPerPage": 10},
        ).classes("w-full")
        table.props("dense flat bordered")

        # Version verlinkt auf die JSON-Ansicht
        table.add_slot(
            "body-cell-version",
            '''
            <q-td :props="props">
                <a :href="'/schemas/view/' + props.row.version"
                   target="_blank"
                   class="text-blue-600 hover:underline font-medium">
                    v{{ props.row.version }}
                </a>
            </q-td>
            ''',
        )


def _render_diff_section(versions: list[int]) -> None:
    """Auswahl zweier Versionen und Anzeige des Diffs."""
    with ui.card().classes("w-full"):
        ui.label("Vergleich").classes("text-sm text-gray-500 font-medium mb-2")

        if len(versions) < 2:
            ui.label("Für einen Vergleich werden zwei Versionen benötigt.").classes(
                "text-gray-400 italic"
            )
            return

        options = {v: f"v{v}" for v in sorted(versions)}
        with ui.row().classes("items-center gap-4"):
            select_a = ui.select(options, label="Von", value=versions[1]).classes("w-32")
            select_b = ui.select(options, label="Nach", value=versions[0]).classes("w-32")
            button = ui.button("Vergleichen", icon="compare_arrows")

        result = ui.column().classes("w-full gap-2 mt-2")

        async def show_diff() -> None:
            from app.state import get_version_manager

            result.clear()
            manager = get_version_manager()
            if manager is None:
                return
            try:
                diff = await manager.diff(select_a.value, select_b.value)
            except SchemaEngineError as exc:
                ui.notify(f"Vergleich fehlgeschlagen: {exc}", type="negative")
                return

            with result:
                if diff.is_empty:
                    ui.label("Keine Unterschiede.").classes("text-gray-500 italic")
                    return
                for title, paths, color in [
                    ("Hinzugefügt", diff.added, "text-green-700"),
                    ("Entfernt", diff.removed, "text-red-700"),
                    ("Geändert", diff.changed, "text-yellow-700"),
                ]:
                    if not paths:
                        continue
                    ui.label(f"{title} ({len(paths)})").classes(f"{color} font-medium")
                    for path in paths:
                        ui.label(path).classes("font-mono text-xs text-gray-700 pl-4")

        button.on_click(show_diff)


# ---------------------------------------------------------------------------
# Seiten-Definition
# ---------------------------------------------------------------------------

def register(app: Any = None) -> None:
    """Registriert die Historien-Seite."""

    @ui.page("/")
    async def history_page() -> None:
        with page_layout("Schema-Historie"):
            content = ui.column().classes("w-full gap-4")

            async def render_content() -> None:
                content.clear()
                data = await load_history_data()
                with content:
                    _render_worker_status(data["worker"])
                    _render_counter_cards(data)
                    _render_history_table(data["history"])
                    _render_diff_section([e["version"] for e in data["history"]])

            await render_content()
