# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""CLI context for global state management.

This module provides thread-safe context management for CLI options and
loaded configuration. The CLIContext is set once at CLI startup and
made available to all commands via contextvars.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from nanogit.config import Config


# Thread-safe context variable for CLIContext
_current_cli_context: contextvars.ContextVar[CLIContext | None] = (
    contextvars.ContextVar("cli_context", default=None)
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with configuration and options.

    Attributes:
        config: Loaded configuration object.
        verbose: Enable verbose output with additional details.
        repo_root: Working tree root of the repository, or None when the
            command runs outside a repository.
        config_error: Error message if config loading failed.
        logger: Structured logger for CLI commands (writes to file only).
    """

    config: Config = field(repr=False)
    verbose: bool = False
    repo_root: Path | None = None
    config_error: str | None = None
    logger: FilteringBoundLogger | None = field(default=None, repr=False)

    @classmethod
    def get_current(cls) -> CLIContext:
        """Get current active CLIContext, or create a default if not set.

        Returns:
            The currently active CLIContext, or a default instance if none is set.
        """
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx

        from nanogit.config import Config  # noqa: PLC0415

        return cls(config=Config.from_dict({}))

    @classmethod
    def set_current(cls, ctx: CLIContext) -> None:
        """Set the current active CLIContext."""
        _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to default context.

        This is primarily useful for testing to ensure a clean state between tests.
        """
        _current_cli_context.set(None)
