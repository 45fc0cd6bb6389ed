"""Application configuration via pydantic-settings."""

from __future__ import annotations

import json
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "", "case_sensitive": False}

    # Database
    database_url: str = "sqlite+aiosqlite:///./serverdeck.db"

    # REST gateway; when set the CLI talks to the API instead of the database
    api_url: str | None = None
    api_timeout: float = 10.0

    # Store defaults
    actor: str = "current-user"
    page_size: int = 20
    numeric_aware_sort: bool = False
    gateway_timeout: float | None = None

    # Sync
    sync_batch_size: int = 1000

    # Saved views are kept in a local JSON file by the CLI
    views_path: str = "serverdeck-views.json"

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return json.loads(v)
        return v


settings = Settings()
