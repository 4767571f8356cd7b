"""nanogit exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class NanogitError(Exception):
    """Base exception for nanogit errors."""


# =============================================================================
# Engine Exceptions
# =============================================================================


class EngineError(NanogitError):
    """Base exception for failures reported by the object-store engine.

    Engine errors pass through the repository cache unchanged and are never
    cached, so a retry after the underlying problem is fixed recomputes.

    Attributes:
        path: The repository path the failure relates to, if known.
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The repository path the failure relates to.
        """
        super().__init__(message)
        self.path: Path | None = path


class NotARepositoryError(EngineError):
    """Raised when a path is not a valid repository root. Not retryable."""


class RepositoryLockedError(EngineError):
    """Raised when another process holds a repository lock.

    Callers may retry after a backoff; nanogit never retries on its own.
    """


class RepositoryCorruptedError(EngineError):
    """Raised when the object store is inconsistent (missing or bad objects)."""


class RepositoryIOError(EngineError):
    """Raised when reading or writing repository files fails."""


class RepositoryConflictError(EngineError):
    """Raised when HEAD moved between reading the parent and writing a commit.

    Attributes:
        path: The repository path where the conflict occurred.
        details: Additional details about the conflict.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        details: str | None = None,
    ) -> None:
        """Initialize with error message and conflict context.

        Args:
            message: Human-readable error message.
            path: The repository path where the conflict occurred.
            details: Additional details about the conflict.
        """
        super().__init__(message, path=path)
        self.details: str | None = details


class RepositoryPathViolationError(NanogitError, ValueError):
    """Raised when attempting to operate on files outside the repository.

    Attributes:
        path: The path that violated the constraint.
        root: The repository root directory.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        root: Path | None = None,
    ) -> None:
        """Initialize with error message and path violation context.

        Args:
            message: Human-readable error message.
            path: The path that violated the constraint.
            root: The repository root directory.
        """
        super().__init__(message)
        self.path: Path | None = path
        self.root: Path | None = root


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(NanogitError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source
