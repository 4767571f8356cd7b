# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
# ruff: noqa: TC003  # Path needed at runtime for method annotations
"""Configuration container with typed access.

This module provides the main Config class that serves as the primary
interface for accessing nanogit configuration values.
"""

from pathlib import Path
from typing import Any, ClassVar, Self

import tomli_w
from pydantic import BaseModel, ConfigDict, PrivateAttr

from nanogit.config._defaults import DEFAULT_CONFIG
from nanogit.config._loader import (
    copy_value,
    deep_merge,
    parse_env_vars,
    read_toml_file,
)
from nanogit.config._models._cache import CacheConfig
from nanogit.config._models._common import ConfigSource, ConfigSourceName
from nanogit.config._models._logging import LoggingConfig


class Config(BaseModel):
    """Configuration container with typed access.

    This class provides immutable, type-safe access to nanogit configuration.
    Use factory methods to create instances rather than the constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    # Private attributes - not included in model fields
    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())
    _logging: LoggingConfig = PrivateAttr(default_factory=LoggingConfig)
    _cache: CacheConfig = PrivateAttr(default_factory=CacheConfig)

    def __init__(
        self,
        *,
        _data: dict[str, Any] | None = None,
        _sources: tuple[ConfigSource, ...] = (),
    ) -> None:
        """Initialize configuration container.

        This constructor is intended for internal use. Use factory methods
        like from_dict(), from_file(), or load() to create Config instances.
        Sections are parsed from the merged data, which must already have
        passed validation.

        Args:
            _data: The complete merged configuration dictionary.
            _sources: Sources that contributed to this configuration.
        """
        super().__init__()
        data = _data if _data is not None else copy_value(DEFAULT_CONFIG)
        self._data = data
        self._sources = _sources
        self._logging = LoggingConfig.model_validate(data.get("logging", {}))
        self._cache = CacheConfig.model_validate(data.get("cache", {}))

    @classmethod
    def _from_merged(
        cls,
        merged: dict[str, Any],
        sources: tuple[ConfigSource, ...],
        *,
        validate: bool,
        source: str | None = None,
    ) -> Self:
        # Deferred import to avoid circular dependency
        from nanogit.config._validation import (  # noqa: PLC0415
            raise_if_validation_errors,
            validate_config,
        )

        if validate:
            issues = validate_config(merged)
            raise_if_validation_errors(issues, source=source)
        return cls(_data=merged, _sources=sources)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, validate: bool = True) -> Self:
        """Create configuration from a dictionary.

        Args:
            data: Dictionary of configuration values.
            validate: Whether to validate the configuration.

        Returns:
            Configuration object from the dictionary merged over defaults.

        Raises:
            ConfigValidationError: If validation fails (when validate=True).
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        return cls._from_merged(merged, (), validate=validate)

    @classmethod
    def from_file(cls, path: Path, *, validate: bool = True) -> Self:
        """Load configuration from a specific file.

        Args:
            path: Path to the TOML config file.
            validate: Whether to validate the loaded config.

        Returns:
            Configuration object from the specified file only.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        source = ConfigSource(
            name=ConfigSourceName.REPOSITORY,
            path=path,
            exists=True,
            values=data,
        )
        merged = deep_merge(DEFAULT_CONFIG, data)
        return cls._from_merged(merged, (source,), validate=validate, source=str(path))

    @classmethod
    def load(
        cls,
        *,
        repo_root: Path | None = None,
        include_env: bool = True,
        include_cli: bool = False,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Merges sources in precedence order (defaults -> user -> repository ->
        env -> cli).

        Args:
            repo_root: Repository root whose ``.nanogit.toml`` is read. If
                None, only user, env and CLI sources apply.
            include_env: Include NANOGIT_SECTION__KEY environment variables.
            include_cli: Include CLI overrides.
            cli_overrides: Dict of CLI argument overrides. Only used if
                include_cli is True.

        Returns:
            Merged configuration object.

        Raises:
            ConfigLoadError: If config files cannot be loaded.
            ConfigValidationError: If merged config fails validation.
        """
        # Deferred import to avoid circular dependency
        from nanogit.config._discovery import discover_sources  # noqa: PLC0415

        sources = discover_sources(
            repo_root,
            include_env=include_env,
            include_cli=include_cli,
            cli_overrides=cli_overrides,
        )

        # Sources are discovered highest-to-lowest, so reverse for merging
        merged: dict[str, Any] = {}
        loaded_sources: list[ConfigSource] = []
        for source in reversed(sources):
            values: dict[str, Any] = {}
            if source.name in {ConfigSourceName.DEFAULT, ConfigSourceName.CLI}:
                values = source.values
            elif source.name == ConfigSourceName.ENV:
                values = parse_env_vars()
            elif source.path and source.exists:
                values = read_toml_file(source.path)

            loaded_sources.append(
                ConfigSource(
                    name=source.name,
                    path=source.path,
                    exists=source.exists,
                    values=values,
                )
            )
            if values:
                merged = deep_merge(merged, values)

        return cls._from_merged(
            merged, tuple(reversed(loaded_sources)), validate=True
        )

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources that contributed to this configuration."""
        return list(self._sources)

    @property
    def logging(self) -> LoggingConfig:
        """Return the logging configuration section."""
        return self._logging

    @property
    def cache(self) -> CacheConfig:
        """Return the cache configuration section."""
        return self._cache

    def to_dict(self, *, include_defaults: bool = True) -> dict[str, Any]:
        """Convert configuration to a dictionary.

        Args:
            include_defaults: Whether to include default values. If False,
                only values that differ from defaults are included.

        Returns:
            Dictionary representation of the configuration.
        """
        if include_defaults:
            return copy_value(self._data)
        return _diff_from_defaults(self._data, DEFAULT_CONFIG)

    def to_toml(self, *, include_defaults: bool = False) -> str:
        """Convert configuration to a TOML string."""
        return tomli_w.dumps(self.to_dict(include_defaults=include_defaults))


def _diff_from_defaults(
    data: dict[str, Any],
    defaults: dict[str, Any],
) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key not in defaults:
            result[key] = copy_value(value)
        elif isinstance(value, dict) and isinstance(defaults[key], dict):
            nested_diff = _diff_from_defaults(value, defaults[key])
            if nested_diff:
                result[key] = nested_diff
        elif value != defaults[key]:
            result[key] = copy_value(value)
    return result
