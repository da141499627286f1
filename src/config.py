"""Environment-based configuration using Pydantic Settings.

Every value can be overridden with a ``CATREC_`` prefixed environment variable
or a local ``.env`` file, e.g. ``CATREC_CATALOG_PATH=data/catalog.csv``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration for the recommendation API and the aggregator."""

    model_config = SettingsConfigDict(
        env_prefix="CATREC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Catalog
    catalog_path: str = "data/catalog.csv"

    # Recommendation API
    api_host: str = "0.0.0.0"
    api_port: int = 8082

    # Where the API forwards recommendation batches
    aggregator_host: str = "localhost"
    aggregator_port: int = 8080
    forward_timeout_seconds: Optional[float] = None

    # Aggregator ingestion listener
    ingest_host: str = "0.0.0.0"
    ingest_port: int = 8080
    ingest_max_batch_bytes: int = 16 * 1024 * 1024
    ingest_max_connections: int = 0  # 0 means unbounded
    ingest_read_timeout_seconds: Optional[float] = None

    # Aggregator dashboard
    dashboard_host: str = "0.0.0.0"
    dashboard_port: int = 9090
    dashboard_refresh_seconds: Optional[int] = 5

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @field_validator("ingest_max_connections")
    @classmethod
    def _check_max_connections(cls, value: int) -> int:
        if value < 0:
            raise ValueError("ingest_max_connections must be >= 0")
        return value

    @property
    def aggregator_address(self) -> tuple:
        return (self.aggregator_host, self.aggregator_port)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()
