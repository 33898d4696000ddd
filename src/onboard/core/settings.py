"""Engine settings.

Hosts tune the engine through environment variables (``ONBOARD_*``) or a
``.env`` file rather than by threading options through every constructor.

Fields
──────
log_level            : structlog log level used by ``configure_logging``
json_logs            : force JSON (True) / console (False) output, None = auto
max_error_history    : bounded size of the ErrorHandler history
max_validation_depth : depth limit for static cycle detection in StepValidator
validate_steps       : run StepValidator when an engine is constructed

Examples:
    >>> from onboard.core.settings import get_settings
    >>> get_settings().max_error_history
    50
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings shared by every engine instance in the process."""

    model_config = SettingsConfigDict(
        env_prefix="ONBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Engine limits ────────────────────────────────────────────
    max_error_history: int = Field(default=50, ge=1)
    max_validation_depth: int = Field(default=100, ge=1)
    validate_steps: bool = True


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Return the process-wide settings (cached after first read)."""
    return EngineSettings()


def reset_settings_cache() -> None:
    """Drop the cached settings so the next read re-parses the environment."""
    get_settings.cache_clear()


__all__ = ["EngineSettings", "get_settings", "reset_settings_cache"]
