"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Taskboard Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://taskboard@localhost:5432/taskboard"
    persistence_backend: str = "sql"
    local_storage_path: str = "~/.local/share/taskboard/storage.json"
    session_ttl_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 12
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "taskboard"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    session_purge_interval_minutes: int = 60


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
