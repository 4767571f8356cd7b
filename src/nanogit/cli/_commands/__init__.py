"""nanogit CLI commands."""
# pyright: reportUnusedCallResult=false

from __future__ import annotations

from typing import TYPE_CHECKING

from ._config import config
from ._context import CLIContext
from ._read import branches, diff, log, status
from ._shared import (
    ExitCode,
    exit_code_for,
    exit_with_error,
    get_error_console,
    open_repository,
)
from ._write import commit, stage, unstage

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "CLIContext",
    "ExitCode",
    "exit_code_for",
    "exit_with_error",
    "get_error_console",
    "open_repository",
    "register_commands",
]


def register_commands(app: App) -> None:
    app.command(status, name="status")
    app.command(diff, name="diff")
    app.command(branches, name="branches")
    app.command(log, name="log")
    app.command(stage, name="stage")
    app.command(unstage, name="unstage")
    app.command(commit, name="commit")
    app.command(config, name="config")
