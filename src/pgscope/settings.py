"""
Pydantic v2 settings for pgscope.
Supports .env files and environment variables prefixed with `PGSCOPE_`.
"""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PgScopeSettings(BaseSettings):
    """Settings that shape the SQL pgscope generates."""

    model_config = SettingsConfigDict(
        env_prefix='PGSCOPE_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    log_level   : str = Field(default="INFO", description="Logging level for the pgscope logger", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    bind_prefix : str = Field(default="p", description="Prefix for generated bind parameter names", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")


# Global settings singleton
_SETTINGS: PgScopeSettings | None = None

def get_settings() -> PgScopeSettings:
    """Retrieve the global settings singleton, loading it on first access.

    Example:
        >>> settings = get_settings()
        >>> settings.bind_prefix
        'p'
    """
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = PgScopeSettings()
    return _SETTINGS


def reset_settings() -> None:
    """Drop the cached settings so the next `get_settings()` reloads them."""
    global _SETTINGS
    _SETTINGS = None


def configure_logging() -> logging.Logger:
    """Apply `log_level` to the package logger. Handlers are left to the application."""
    logger = logging.getLogger("pgscope")
    logger.setLevel(get_settings().log_level)
    return logger
