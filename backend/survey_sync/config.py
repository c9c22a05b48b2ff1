from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings
from functools import lru_cache

_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Survey Sync API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    cors_origins: list[str] = ["http://localhost:5173"]

    # Deployment identifier — scopes the collection path
    # artifacts/{app_id}/public/data/projects
    app_id: str = "data-project-survey-app"

    # Document store: "http" talks to a remote survey-sync API,
    # "sql" persists locally through SQLAlchemy.
    document_store: Literal["http", "sql"] = "sql"
    database_url: str = "sqlite:///data/surveys.db"
    store_base_url: str = "http://localhost:8030/api/v1"
    store_timeout_seconds: float = 30.0

    # Identity — an empty API key selects the offline local provider
    identity_base_url: str = "https://identitytoolkit.googleapis.com/v1"
    identity_api_key: str = ""
    initial_auth_token: str = ""

    # Blank rows per list restored when a draft is reset
    min_scaffold_rows: int = 1

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine — SQL queries
    log_level_http: str = "WARNING"          # httpx / httpcore — outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_sync: str = "INFO"             # identity, feed, saves and deletes

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    @property
    def collection_path(self) -> str:
        return collection_path(self.app_id)


def collection_path(app_id: str) -> str:
    """Tenant-scoped path of the survey collection for a deployment."""
    return f"artifacts/{app_id}/public/data/projects"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
