"""Services that orchestrate fetch runs and the translation sweep."""

from buzzing.services.ingestion_service import IngestionService, UnknownSourceError
from buzzing.services.translation_sweep import SweepResult, TranslationSweep

__all__ = ["IngestionService", "UnknownSourceError", "SweepResult", "TranslationSweep"]
