"""Config path discovery utilities.

This module determines the platform-specific user configuration file and
the per-repository configuration file, and assembles the list of sources
that Config.load() merges.
"""

from pathlib import Path
from typing import Any

import platformdirs

from ._defaults import DEFAULT_CONFIG
from ._models._common import ConfigSource, ConfigSourceName

REPOSITORY_CONFIG_NAME = ".nanogit.toml"


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/nanogit/config.toml``
    - macOS: ``~/Library/Application Support/nanogit/config.toml``
    - Windows: ``%APPDATA%\nanogit\config.toml``

    The path is returned regardless of whether the file exists.

    Examples:
        >>> path = get_user_config_path()
        >>> path.name
        'config.toml'
    """
    return platformdirs.user_config_path("nanogit") / "config.toml"


def get_repository_config_path(repo_root: Path) -> Path:
    """Get the configuration file of a repository."""
    return repo_root / REPOSITORY_CONFIG_NAME


def _file_exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def discover_sources(
    repo_root: Path | None = None,
    *,
    include_env: bool = True,
    include_cli: bool = False,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    File-based sources are checked for existence but not read.

    Args:
        repo_root: Repository root. The repository source is omitted when
            None.
        include_env: Include environment variables as a source.
        include_cli: Include CLI overrides as a source.
        cli_overrides: Dictionary of CLI argument overrides.

    Returns:
        List of ConfigSource objects in precedence order (highest first).
        Sources that don't exist are still included with exists=False.
    """
    sources: list[ConfigSource] = []

    if include_cli:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.CLI,
                path=None,
                exists=bool(cli_overrides),
                values=cli_overrides or {},
            )
        )

    if include_env:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.ENV,
                path=None,
                exists=True,  # Actual values parsed during loading phase
                values={},
            )
        )

    if repo_root is not None:
        repo_path = get_repository_config_path(repo_root)
        sources.append(
            ConfigSource(
                name=ConfigSourceName.REPOSITORY,
                path=repo_path,
                exists=_file_exists(repo_path),
                values={},
            )
        )

    user_path = get_user_config_path()
    sources.append(
        ConfigSource(
            name=ConfigSourceName.USER,
            path=user_path,
            exists=_file_exists(user_path),
            values={},
        )
    )

    sources.append(
        ConfigSource(
            name=ConfigSourceName.DEFAULT,
            path=None,
            exists=True,
            values=DEFAULT_CONFIG,
        )
    )

    return sources
