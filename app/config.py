"""Konfigurationsmanagement mit Pydantic Settings.

Lädt Konfiguration aus Environment-Variablen und .env-Datei.
Alle Felder haben sinnvolle Defaults – der Service startet auch ohne .env.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Erlaubte Log-Level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    """Zentrale Konfiguration des Schema-Drift-Service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # ENV-Variablen haben Vorrang vor .env-Datei
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # --- Server ---
    host: str = Field(default="0.0.0.0", description="Bind-Adresse des Servers")
    port: int = Field(default=8501, ge=1, le=65535, description="Port des Servers")

    # --- Schema-Inferenz ---
    inference_sample_size: int = Field(
        default=30,
        ge=1,
        description="Anzahl der neuesten Rohdatensätze pro Inferenz-Lauf",
    )
    array_sample_limit: int = Field(
        default=3,
        ge=1,
        description="Maximal untersuchte Elemente pro Array (Kosten-Deckel)",
    )
    version_conflict_retries: int = Field(
        default=3,
        ge=1,
        description="Versuche bei Versionskonflikt, bevor der Lauf als erledigt gilt",
    )
    inference_queue_size: int = Field(
        default=1,
        ge=1,
        description="Tiefe der Inferenz-Queue (1 = Jobs werden zusammengefasst)",
    )

    # --- Listen-Limits für die API ---
    history_limit: int = Field(default=200, ge=1)
    raw_list_limit: int = Field(default=200, ge=1)

    # --- Logging ---
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Log-Level für die Anwendung",
    )

    # --- Pfade ---
    data_dir: Path = Field(
        default=Path("./data"),
        description="Verzeichnis für SQLite-DB und Logs",
    )

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Leerzeichen entfernen, leere Adresse ablehnen."""
        v = v.strip()
        if not v:
            raise ValueError("HOST darf nicht leer sein")
        return v

    @property
    def db_path(self) -> Path:
        """Pfad zur SQLite-Datenbank."""
        return self.data_dir / "schema_drift.db"

    @property
    def log_dir(self) -> Path:
        """Pfad zum Log-Verzeichnis."""
        return self.data_dir / "logs"


# Singleton-Pattern: wird beim ersten Zugriff erstellt
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Gibt die Settings-Instanz zurück (Lazy Singleton).

    Wird beim ersten Aufruf erstellt und danach wiederverwendet.
    Wirft ValidationError bei ungültigen Werten.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
