"""GRC framework ingestion and control mapping."""

__version__ = "0.1.0"
