"""Reengki admin configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "Reengki Admin"
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    # Network
    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Remote object storage (R2 worker)
    storage_api_url: str = "https://r2-api.reengki.com"
    storage_public_url: str = ""  # defaults to storage_api_url
    storage_bucket: str = "reengki"  # default category
    storage_timeout_seconds: float = 30.0  # per request
    storage_listing_deadline_seconds: float = 120.0  # whole paginated listing

    # Full-listing cache
    listing_cache_ttl_seconds: float = 1800.0  # 30 minutes
    listing_cache_refresh_ratio: float = 0.8
    cache_sweep_interval_seconds: int = 300  # 0 disables the sweep job
    cache_per_category_invalidation: bool = False

    # Uploads
    max_upload_bytes: int = 2 * 1024 * 1024 * 1024  # 2 GiB

    # Static admin assets (relative resolved from backend/ at runtime)
    static_dir: str = "./static"

    uvicorn_workers: int = 1

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="REENGKI_",
        extra="ignore",
    )

    @property
    def public_url(self) -> str:
        return (self.storage_public_url or self.storage_api_url).rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:3000"]

    @field_validator("listing_cache_refresh_ratio")
    @classmethod
    def check_refresh_ratio(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("listing_cache_refresh_ratio must be in (0, 1]")
        return value

    @field_validator(
        "listing_cache_ttl_seconds",
        "storage_timeout_seconds",
        "storage_listing_deadline_seconds",
    )
    @classmethod
    def check_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure the static directory is absolute."""
        base = Path(__file__).resolve().parent.parent  # backend/
        if not Path(self.static_dir).is_absolute():
            self.static_dir = str(base / self.static_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
