"""Gemeinsames Layout-Template für alle UI-Seiten.

Stellt eine konsistente Seitenstruktur mit Header und linker
Sidebar-Navigation bereit.  Jede Seite nutzt `with page_layout("Titel"):`,
um ihren Content im Hauptbereich zu platzieren.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from nicegui import ui


# ---------------------------------------------------------------------------
# Farb- und Style-Konstanten
# ---------------------------------------------------------------------------

HEADER_BG = "bg-slate-800"
SIDEBAR_BG = "bg-gray-50"
SIDEBAR_WIDTH = "w-56"

# Navigationseinträge: (Icon, Label, Route)
NAV_ITEMS: list[tuple[str, str, str]] = [
    ("history", "Schema-Historie", "/"),
    ("data_object", "Letztes Schema", "/schema/latest"),
    ("inventory_2", "Rohdaten", "/raw"),
    ("monitor_heart", "Health", "/health"),
]


# ---------------------------------------------------------------------------
# Status-Farben und Icons für den Inferenz-Worker
# ---------------------------------------------------------------------------

WORKER_STATE_STYLES: dict[str, dict[str, str]] = {
    "idle": {"color": "text-green-600", "icon": "circle", "label": "Bereit"},
    "running": {"color": "text-green-600", "icon": "sync", "label": "Inferenz läuft"},
    "stopped": {"color": "text-red-600", "icon": "stop_circle", "label": "Gestoppt"},
}

UNKNOWN_STATE_STYLE: dict[str, str] = {
    "color": "text-gray-400", "icon": "help_outline", "label": "N/A",
}


def worker_state_display(state: str | None) -> dict[str, str]:
    """Style für einen Worker-Zustand (None = nicht initialisiert)."""
    if state is None:
        return UNKNOWN_STATE_STYLE
    return WORKER_STATE_STYLES.get(state, {**UNKNOWN_STATE_STYLE, "label": state})


def _get_worker_state_display() -> dict[str, str]:
    """Ermittelt den aktuellen Worker-Status für den Header."""
    from app.state import get_worker

    worker = get_worker()
    return worker_state_display(worker.status.state.value if worker else None)


# ---------------------------------------------------------------------------
# Layout-Builder
# ---------------------------------------------------------------------------

@contextmanager
def page_layout(title: str) -> Generator[None, None, None]:
    """Context-Manager für das Seitenlayout mit Header + Sidebar.

    Verwendung:
        @ui.page("/example")
        def example_page():
            with page_layout("Beispiel"):
                ui.label("Inhalt hier")

    Args:
        title: Seitentitel, wird im Browser-Tab und Header angezeigt.
    """
    ui.page_title(f"{title} – Schema Drift")

    # --- Header ---
    with ui.header().classes(f"{HEADER_BG} text-white items-center px-4 h-12"):
        ui.label("🧬 Schema Drift").classes("text-lg font-semibold")

        # Rechte Seite: Worker-Status als Chip
        style = _get_worker_state_display()
        with ui.row().classes("ml-auto items-center"):
            with ui.row().classes(
                "items-center gap-1 px-3 py-1 rounded-full "
                "bg-white/10 border border-white/20"
            ):
                ui.icon(style["icon"]).classes(f"{style['color']} text-sm")
                ui.label(style["label"]).classes("text-xs text-white/90")

    # --- Sidebar + Content ---
    with ui.row().classes("w-full min-h-screen no-wrap"):
        with ui.column().classes(
            f"{SIDEBAR_BG} {SIDEBAR_WIDTH} min-h-screen pt-4 px-2 "
            "border-r border-gray-200 flex-shrink-0"
        ):
            for icon, label, route in NAV_ITEMS:
                _nav_link(icon, label, route)

        # Hauptbereich
        with ui.column().classes("flex-grow p-6 max-w-6xl"):
            yield


def _nav_link(icon: str, label: str, route: str) -> None:
    """Einzelner Navigations-Link in der Sidebar."""
    with ui.link(target=route).classes("no-underline w-full"):
        with ui.row().classes(
            "items-center gap-3 px-3 py-2 rounded-lg w-full "
            "hover:bg-blue-50 transition-colors cursor-pointer"
        ):
            ui.icon(icon).classes("text-gray-600 text-lg")
            ui.label(label).classes("text-gray-700 text-sm")
