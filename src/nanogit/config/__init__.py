"""nanogit configuration.

This module provides the public API for nanogit configuration management,
including loading, validation, and typed access to configuration values.

Example:
    >>> from nanogit.config import Config
    >>> config = Config.load()
    >>> config.cache.max_entries
    256
"""

from nanogit.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

from ._defaults import DEFAULT_CONFIG
from ._discovery import (
    REPOSITORY_CONFIG_NAME,
    discover_sources,
    get_repository_config_path,
    get_user_config_path,
)
from ._load import safe_load_config
from ._loader import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    CacheConfig,
    Config,
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LoggingConfig,
    LogLevel,
)
from ._validation import (
    ValidationIssue,
    raise_if_validation_errors,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "REPOSITORY_CONFIG_NAME",
    "CacheConfig",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ValidationIssue",
    "deep_merge",
    "discover_sources",
    "get_repository_config_path",
    "get_user_config_path",
    "parse_env_vars",
    "parse_string_value",
    "raise_if_validation_errors",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
    "validate_config",
]
