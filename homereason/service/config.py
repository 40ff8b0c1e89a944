"""Service configuration.

Loads from environment variables (prefix ``HOMEREASON_``) and a ``.env``
file, following the pydantic-settings pattern.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from homereason.logic.backward import DEFAULT_MAX_DEPTH
from homereason.logic.forward import DEFAULT_MAX_PASSES


class ReasonerSettings(BaseSettings):
    """Configuration for the reasoning service.

    All values can be set via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="HOMEREASON_",
        env_file=".env",
        extra="ignore",
    )

    # ----- Rules -----
    rules_path: str | None = Field(
        default=None,
        description="JSON rule file to load instead of the packaged modules.",
    )
    rule_modules: list[str] = Field(
        default_factory=lambda: ["smart_home"],
        description="Packaged rule modules to load when rules_path is not set.",
    )

    # ----- Engine limits -----
    max_forward_passes: int = Field(
        default=DEFAULT_MAX_PASSES,
        ge=1,
        description="Forward chaining pass cap.",
    )
    max_proof_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=1,
        description="Backward chaining sub-goal depth cap.",
    )

    # ----- Server -----
    host: str = Field(default="127.0.0.1", description="Bind host.")
    port: int = Field(default=8000, description="Bind port.")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Origins allowed to call the API from a browser.",
    )
    log_level: str = Field(default="INFO", description="Root logging level.")


@lru_cache
def get_settings() -> ReasonerSettings:
    """Get cached settings instance."""
    return ReasonerSettings()
