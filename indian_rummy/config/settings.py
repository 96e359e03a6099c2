"""
Indian Rummy - Application Settings

Loads configuration from environment variables using Pydantic Settings,
and configures standard-library logging from those settings.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Document store
    store_backend: Literal["supabase", "memory"] = "supabase"
    games_table: str = "games"
    lobby_scores_table: str = "lobby_scores"
    max_transaction_retries: int = Field(default=5, ge=1)

    # Realtime
    realtime_poll_interval: float = Field(default=2.0, gt=0)
    subscribe_timeout: float = Field(default=10.0, gt=0)

    # Application
    debug: bool = False
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached singleton settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Install a single stream handler on the root logger."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
