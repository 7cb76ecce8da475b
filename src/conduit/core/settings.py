"""Engine settings for conduit.

Tunables that are not part of a single pipeline's configuration (adapter
capacity, pool defaults, parallelism, logging) are read once from the
environment and cached.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not mid-stream
    - **Environment-driven:** Reads ``CONDUIT_*`` env vars and ``.env``
    - **Sensible defaults:** Works out of the box for development

Examples:
    >>> from conduit.core.settings import get_settings
    >>> get_settings().adapter_capacity
    1000

Tags:
    settings, configuration, pydantic, environment, conduit
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConduitSettings(BaseSettings):
    """Process-wide engine defaults.

    Fields
    ──────
    log_level                      : Structlog log level
    log_format                     : "json" or "console"
    adapter_capacity               : Bounded queue size between two nodes
    pool_initial_size              : Default pre-allocation per typed pool
    pool_auto_grow                 : Default growth policy per typed pool
    max_parallelism                : Worker cap for parallel groups (None = one per member)
    collect_garbage_between_steps  : Run gc.collect() after each top-level step
    """

    model_config = SettingsConfigDict(
        env_prefix="CONDUIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    # ── Streaming ────────────────────────────────────────────────
    adapter_capacity: int = Field(default=1000, ge=1)

    # ── Object pool ──────────────────────────────────────────────
    pool_initial_size: int = Field(default=5000, ge=0)
    pool_auto_grow: bool = Field(default=True)

    # ── Scheduling ───────────────────────────────────────────────
    max_parallelism: int | None = Field(default=None, ge=1)
    collect_garbage_between_steps: bool = Field(default=True)


_settings_cache: dict[str, ConduitSettings] = {}


def get_settings(*, _force_reload: bool = False) -> ConduitSettings:
    """Load, validate, and cache a :class:`ConduitSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = ConduitSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["ConduitSettings", "get_settings", "clear_settings_cache"]
