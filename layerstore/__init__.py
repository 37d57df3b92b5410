"""layerstore: layered application settings and idempotent record ingestion."""

__version__ = "0.1.0"
