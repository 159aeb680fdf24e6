"""Application configuration using pydantic-settings."""

import json
from ast import literal_eval
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ScamWatch"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    # API
    api_v1_prefix: str = "/api/v1"
    cors_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:4200",
        "http://localhost:3000",
    ]

    # Search Console (analytics source)
    google_application_credentials: str = "service-account-credentials.json"
    search_console_site_url: str = "https://www.canada.ca/"
    search_console_url_filters: Annotated[list[str], NoDecode] = [
        "/en/revenue-agency/",
        "/fr/agence-revenu/",
        "/en/services/taxes/",
        "/fr/services/impots/",
    ]
    search_console_row_limit: int = 25_000
    search_console_timeout: float = 60.0
    search_console_throttle_seconds: float = 0.2
    search_console_max_date_range_days: int = 540
    # Skip the credential check at startup (tests, offline dev)
    search_console_enabled: bool = True

    # Scam detection
    impression_threshold: int = 500
    default_date_range_days: int = 28
    keywords_config_path: str = str(DATA_DIR / "scam_keywords.json")

    # Embeddings (semantic similarity)
    openai_api_key: str | None = None
    embeddings_base_url: str = "https://api.openai.com/v1"
    embeddings_model: str = "text-embedding-3-large"
    embeddings_timeout: float = 60.0
    similarity_threshold: float = 0.80
    seed_phrases_path: str = str(DATA_DIR / "seed_phrases.json")

    # Google Trends
    trends_geo: str = "CA"
    trends_language: str = "en-US"
    trends_time_range: str = "today 3-m"
    trends_timeout: float = 30.0
    trends_panel_limit: int = 10
    trends_request_delay_seconds: float = 0.5

    # Cache
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 5.0
    analytics_cache_ttl_seconds: int = 3600
    keywords_cache_ttl_seconds: int = 300
    embeddings_cache_ttl_seconds: int = 86400
    benchmarks_cache_ttl_seconds: int = 86400
    trends_cache_ttl_seconds: int = 1800

    # CTR benchmarks
    benchmark_days: int = 90
    benchmark_min_impressions: int = 10
    benchmark_exclude_flagged: bool = True

    # Emerging threats
    emerging_max_results: int = 5000
    emerging_page_size: int = 1000
    emerging_max_pages: int = 5

    @property
    def semantic_enabled(self) -> bool:
        """Whether an embeddings backend is configured."""
        return bool(self.openai_api_key)

    @field_validator("cors_origins", "search_console_url_filters", mode="before")
    @classmethod
    def _parse_list(cls, value: object) -> object:
        """Accept JSON list/string or comma-separated values."""
        def normalize(item: object) -> str:
            cleaned = str(item).strip().strip("'\"")
            if cleaned.startswith("[") and cleaned.endswith("]"):
                cleaned = cleaned[1:-1].strip().strip("'\"")
            return cleaned

        if isinstance(value, list):
            return [normalize(item) for item in value if normalize(item)]
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            try:
                parsed = literal_eval(raw)
            except (ValueError, SyntaxError):
                parsed = [normalize(item) for item in raw.split(",")]
                return [item for item in parsed if item]

        if isinstance(parsed, str):
            parsed = [parsed]
        if isinstance(parsed, tuple | set):
            parsed = list(parsed)
        if not isinstance(parsed, list):
            raise ValueError(
                "Value must be a JSON array, JSON string, or comma-separated string.",
            )
        return [normalize(item) for item in parsed if normalize(item)]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()

    return settings


settings = get_settings()
