from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Catalog Metadata API"
    debug: bool = False
    log_level: str = "INFO"

    # Catalog stores
    catalog_db_path: Optional[str] = None  # Path to the primary catalog sqlite file
    annotations_filename: str = "track_files.sqlite3"  # Sibling of the catalog file

    # Connection pools (per store)
    pool_size: int = 8
    pool_timeout: int = 10

    # Search
    search_timeout_seconds: float = 10.0
    search_default_limit: int = 20
    search_max_limit: int = 50
    search_min_query_length: int = 2

    # Batch lookup
    batch_max_items: int = 400


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
