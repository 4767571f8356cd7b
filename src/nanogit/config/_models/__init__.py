"""Configuration models.

This module provides Pydantic models for nanogit configuration sections
and the main Config container class.
"""

from nanogit.config._models._cache import CacheConfig
from nanogit.config._models._common import (
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LogLevel,
)
from nanogit.config._models._config import Config
from nanogit.config._models._logging import LoggingConfig

__all__ = [
    "CacheConfig",
    "Config",
    "ConfigSource",
    "ConfigSourceName",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
]
