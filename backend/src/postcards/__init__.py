"""Postcard inbox backend: ingestion, record store, review lifecycle and exports."""

__version__ = "0.1.0"
