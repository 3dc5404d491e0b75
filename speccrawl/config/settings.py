"""Configuration settings using Pydantic."""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # W3C API
    w3c_api_url: str = Field(default="https://api.w3.org", description="W3C API base URL")
    w3c_api_key: str | None = Field(default=None, description="W3C API key")

    # Repository index (browser-specs shaped JSON list)
    repository_index_url: str = Field(
        default="https://w3c.github.io/browser-specs/index.json",
        description="Index used to map spec URLs to repositories",
    )

    # Paths
    data_dir: Path = Field(default=Path("data/runs"), description="Data directory")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Crawling
    max_concurrency: int = Field(default=10, description="Concurrent extractions")
    crawl_timeout_seconds: float = Field(
        default=60.0,
        description="Wall-clock deadline for one extraction",
    )
    start_method: str = Field(
        default="spawn",
        description="multiprocessing start method for extraction processes",
    )
    published_version: bool = Field(
        default=False,
        description="Crawl latest published versions instead of editor's drafts",
    )

    # HTTP
    max_retries: int = Field(default=3, description="Maximum retry attempts")
    timeout_seconds: int = Field(default=30, description="Request timeout in seconds")
    retry_backoff: float = Field(
        default=2.0,
        description="Base of the exponential backoff between retries, in seconds",
    )


def load_spec_config() -> dict:
    """Load the known specs list and URL equivalents from YAML."""
    config_path = Path(__file__).parent / "specs.yaml"
    with open(config_path) as f:
        return yaml.safe_load(f)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
