from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from nanogit.exceptions import ConfigError

from ._models import Config

if TYPE_CHECKING:
    from pathlib import Path


def _fail_or_warn(message: str, *, strict_mode: bool) -> None:
    if strict_mode:
        print(f"Error: {message}", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    print(f"Warning: {message}", file=sys.stderr)  # noqa: T201


def safe_load_config(
    *,
    config_path: Path | None = None,
    repo_root: Path | None = None,
    cli_overrides: dict[str, object] | None = None,
) -> tuple[Config, str | None]:
    """Load configuration with error handling.

    Attempts to load configuration and handles errors based on the
    NANOGIT_STRICT_CONFIG environment variable:
    - If unset or "0": warn to stderr and return the default config
    - If "1": fail fast with sys.exit(1)

    When config_path is provided, the file must exist (explicit user request).

    Args:
        config_path: Explicit path to config file (--config flag).
        repo_root: Repository root whose .nanogit.toml is merged.
        cli_overrides: CLI argument overrides to pass to Config.load().

    Returns:
        Tuple of (Config, error_message). On success, error_message is None.
        On failure (non-strict mode), returns default Config with error message.
    """
    strict_mode = os.environ.get("NANOGIT_STRICT_CONFIG", "0") == "1"

    if config_path is not None and not config_path.exists():
        # Explicit path - always fail
        _fail_or_warn(f"Config file not found: {config_path}", strict_mode=True)

    try:
        if config_path is not None:
            return Config.from_file(config_path), None
        config = Config.load(
            repo_root=repo_root,
            include_env=True,
            include_cli=cli_overrides is not None,
            cli_overrides=dict(cli_overrides) if cli_overrides else None,
        )
    except ConfigError as e:
        error_msg = str(e)
        _fail_or_warn(f"Failed to load config: {error_msg}", strict_mode=strict_mode)
    except OSError as e:
        error_msg = f"Failed to load config: {e}"
        _fail_or_warn(error_msg, strict_mode=strict_mode)
    else:
        return config, None
    return Config.from_dict({}), error_msg
