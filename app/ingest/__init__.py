"""Ingestion – Rohdatensätze entgegennehmen und speichern."""

from app.ingest.service import IngestionService

__all__ = ["IngestionService"]
