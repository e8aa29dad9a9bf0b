# solar_engine_pro/settings.py

from __future__ import annotations
import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine defaults, overridable through SOLAR_ENGINE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SOLAR_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    monte_carlo_iterations: int = Field(default=500, gt=0)
    monte_carlo_workers: int = Field(default=1, ge=1)
    monte_carlo_deadline_seconds: Optional[float] = Field(default=None, gt=0)
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Attach a basic handler for applications that embed the engine."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("solar_engine_pro").setLevel(settings.log_level.upper())
