"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes and the mapping from nanogit errors to them
- Opening the cached repository for the current CLI context
- Console utilities for error handling
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import IntEnum
from typing import TYPE_CHECKING, Never

from rich.markup import escape

from nanogit.exceptions import (
    ConfigError,
    NanogitError,
    NotARepositoryError,
    RepositoryConflictError,
    RepositoryCorruptedError,
    RepositoryIOError,
    RepositoryLockedError,
    RepositoryPathViolationError,
)
from nanogit.repository import CachedRepository

from ._context import CLIContext

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "ExitCode",
    "exit_code_for",
    "exit_with_error",
    "get_error_console",
    "open_repository",
]


class ExitCode(IntEnum):
    """Standard exit codes for nanogit CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    USAGE_ERROR = 2
    NOT_A_REPOSITORY = 3
    IO_ERROR = 4
    CORRUPTED = 5
    CONFLICT = 6
    INTERNAL_ERROR = 7


# Checked in order, so subclasses must precede their bases.
_ERROR_CODES: tuple[tuple[type[Exception], ExitCode], ...] = (
    (NotARepositoryError, ExitCode.NOT_A_REPOSITORY),
    (RepositoryConflictError, ExitCode.CONFLICT),
    (RepositoryCorruptedError, ExitCode.CORRUPTED),
    (RepositoryLockedError, ExitCode.IO_ERROR),
    (RepositoryIOError, ExitCode.IO_ERROR),
    (RepositoryPathViolationError, ExitCode.USAGE_ERROR),
    (ConfigError, ExitCode.CONFIG_ERROR),
    (ValueError, ExitCode.USAGE_ERROR),
)


def exit_code_for(error: Exception) -> ExitCode:
    """Map an exception raised by a command to its exit code.

    Args:
        error: The exception raised by the repository or config layer.

    Returns:
        The matching exit code, INTERNAL_ERROR for anything unmapped.
    """
    for error_type, code in _ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCode.INTERNAL_ERROR


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr.

    Returns:
        Console instance writing to stderr.
    """
    from rich.console import Console  # noqa: PLC0415

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use (defaults to INTERNAL_ERROR).
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    raise SystemExit(code)


@contextmanager
def open_repository() -> Iterator[CachedRepository]:
    """Open the repository of the current CLI context.

    nanogit errors raised inside the block are reported on stderr and
    turned into the matching exit code.

    Yields:
        The CachedRepository for the context's repository root.

    Raises:
        SystemExit: If there is no repository or a command fails.
    """
    ctx = CLIContext.get_current()
    if ctx.repo_root is None:
        exit_with_error("Not inside a git repository", ExitCode.NOT_A_REPOSITORY)

    try:
        with CachedRepository.open(
            ctx.repo_root, config=ctx.config.cache, logger=ctx.logger
        ) as repo:
            yield repo
    except (NanogitError, ValueError) as e:
        if ctx.logger is not None:
            ctx.logger.error(
                "command_failed", error=str(e), error_type=type(e).__name__
            )
        exit_with_error(str(e), exit_code_for(e))
