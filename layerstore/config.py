"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "layerstore"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; use postgresql:// for psycopg2)
    database_url: str = "postgresql+psycopg://localhost:5432/layerstore_dev"
    # Shared "core" database holding applications/settings; defaults to database_url
    database_url_core: str = ""
    db_connect_timeout: int = 10  # seconds
    db_max_connections: int = 5

    # Registered application identity (hash + secret issued by register_application)
    application_id: Optional[str] = None
    application_secret: Optional[str] = None
    application_name: str = ""
    application_host: str = ""

    # Background persistence worker: seconds to wait for the queue to drain on stop
    persistence_stop_timeout: float = 10.0

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'layerstore_dev')}"
        )
        self.database_url = _normalize_database_url(os.getenv("DATABASE_URL", default_url))
        self.database_url_core = _normalize_database_url(
            os.getenv("DATABASE_URL_CORE") or self.database_url
        )
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))
        self.db_max_connections = int(os.getenv("DB_MAX_CONNECTIONS", str(self.db_max_connections)))

        self.application_id = os.getenv("APPLICATION_ID") or None
        self.application_secret = os.getenv("APPLICATION_SECRET") or None
        self.application_name = os.getenv("APPLICATION_NAME", "")
        self.application_host = os.getenv("APPLICATION_HOST", "")

        self.persistence_stop_timeout = float(
            os.getenv("PERSISTENCE_STOP_TIMEOUT", str(self.persistence_stop_timeout))
        )


def _normalize_database_url(raw_url: str) -> str:
    """Ensure psycopg3 driver if URL uses generic postgresql://."""
    if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url
