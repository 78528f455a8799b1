"""
Configuration settings for the pal engine.

Uses Pydantic Settings for environment variable management with .env file support.
Variables are prefixed with PAL_ (e.g. PAL_LOG_LEVEL=DEBUG).

Tunable model constants (blend weights, learning rates, ZPD band) are not
process settings; they live in ``pal.core.constants``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Ranked Recommendations
    # ========================================
    default_algorithm: Literal["simple", "irt", "elo", "bkt", "modified-elo"] = Field(
        default="simple",
        description="Scoring strategy used by the ranked list",
    )
    ranked_limit: int = Field(
        default=5,
        ge=0,
        description="Number of ranked recommendations returned",
    )
    prerequisite_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Mastery a prerequisite needs before its dependents are unblocked",
    )

    # ========================================
    # Core Constants
    # ========================================
    constants_csv: str | None = Field(
        default=None,
        description="Constants CSV applied at CLI start-up (category,key,value rows)",
    )

    def get_ranking_config(self) -> dict[str, Any]:
        """Get ranked-list configuration as a dictionary."""
        return {
            "algorithm": self.default_algorithm,
            "limit": self.ranked_limit,
            "prerequisite_threshold": self.prerequisite_threshold,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
