"""Buzzing: trending-content ingestion, translation and retention."""

__version__ = "0.1.0"
