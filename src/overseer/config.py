"""
Configuration for Overseer.

Uses Pydantic Settings to load environment variables.
All settings prefixed with OVERSEER_ for namespace isolation.
Example: OVERSEER_SUPERVISOR_TIMEOUT_SECONDS=10
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

FallbackAction = Literal["allow", "block"]


class OverseerSettings(BaseSettings):
    """
    Settings for the supervision layer.

    The defaults reproduce the unhardened chain behavior: no timeouts,
    advisory permissions and lenient session registration.
    """

    model_config = SettingsConfigDict(
        env_prefix="OVERSEER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(
        "INFO",
        description="Root log level",
    )
    log_file: str | None = Field(
        None,
        description="Optional rotating log file path",
    )

    # Chain hardening
    supervisor_timeout_seconds: float | None = Field(
        None,
        description="Per-supervisor call timeout in seconds (None disables)",
        gt=0,
    )
    request_timeout_fallback: FallbackAction = Field(
        "block",
        description="Action taken when a supervisor times out on a request",
    )
    response_timeout_fallback: FallbackAction = Field(
        "allow",
        description="Action taken when a supervisor times out on a response",
    )

    # Policy
    enforce_permissions: bool = Field(
        False,
        description="Ignore modify results from supervisors lacking MODIFY_MESSAGES",
    )
    strict_registration: bool = Field(
        False,
        description="Reject register_supervisor() for ids missing from the registry",
    )


@lru_cache
def get_settings() -> OverseerSettings:
    """Get cached settings instance."""
    return OverseerSettings()
