# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    database_url: str
    environment: str = "production"
    log_level: str = "info"
    cors_origins: list[str] = []
    database_pool_size: int = 20

    # Entity links
    max_bulk_targets: int = 500
    photo_link_batch_size: int = 50
    # Rows read for a trip summary before it is reported as possibly incomplete.
    summary_safety_limit: int = 10000
    verify_entity_membership: bool = True
    bulk_rate_limit: str = "30/minute"

    # Auth
    jwt_secret_key: str

    model_config = {"env_file": ".env"}

    @model_validator(mode="after")
    def _validate_jwt_secret(self) -> "Settings":
        if len(self.jwt_secret_key) < 32:
            raise ValueError("jwt_secret_key must be at least 32 characters")
        return self

    @model_validator(mode="after")
    def _validate_batch_sizes(self) -> "Settings":
        if self.max_bulk_targets < 1 or self.photo_link_batch_size < 1:
            raise ValueError("max_bulk_targets and photo_link_batch_size must be positive")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance. Lazy-loaded to avoid import-time failures."""
    return Settings()
