# ruff: noqa: TC003  # Path needed at runtime for Protocol method bodies
"""Query engine protocol for type-safe dependency injection.

This module defines the runtime-checkable Protocol that the object-store
engine satisfies. CachedRepository only talks to this interface, which keeps
the dulwich binding replaceable and lets tests drive the cache with a fake.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from nanogit.repository._models import DiffScope, LogRange
from nanogit.repository._raw import (
    RawCommit,
    RawFileDiff,
    RawRefs,
    RawState,
    RawStatus,
)


@runtime_checkable
class QueryEngine(Protocol):
    """Capability interface of the object-store engine.

    Every method may raise an EngineError subclass (NotARepositoryError,
    RepositoryLockedError, RepositoryCorruptedError, RepositoryIOError).
    Engines perform no caching of their own.
    """

    @property
    def root(self) -> Path:
        """Root directory of the working tree.

        Returns:
            The absolute, resolved path to the repository root.
        """
        ...

    def close(self) -> None:
        """Release file handles held by the engine."""
        ...

    def read_state(self, *, scan_worktree: bool = True) -> RawState:
        """Read the cheap state signals used for fingerprinting.

        Args:
            scan_worktree: Include stat data of tracked files and working
                directories.

        Returns:
            RawState snapshot. Never reads object contents.
        """
        ...

    def read_status(self) -> RawStatus:
        """Scan the index and working tree.

        Returns:
            RawStatus with staged, unstaged and untracked paths.
        """
        ...

    def compute_diff(self, scope: DiffScope) -> tuple[RawFileDiff, ...]:
        """Collect both sides of every changed file within scope.

        Args:
            scope: Paths and comparison target.

        Returns:
            One RawFileDiff per changed file, ordered by path.
        """
        ...

    def list_refs(self) -> RawRefs:
        """Read HEAD and all branch refs.

        Returns:
            RawRefs snapshot.
        """
        ...

    def read_log(self, log_range: LogRange) -> tuple[bytes, ...]:
        """Walk history and return commit ids in log order (newest first).

        Args:
            log_range: Revisions, exclusions, limit and path filter.

        Returns:
            Commit ids as hex bytes. Empty for an unborn HEAD.
        """
        ...

    def read_commit(self, sha: bytes) -> RawCommit:
        """Read a single commit object.

        Args:
            sha: Commit id as hex bytes.

        Returns:
            RawCommit with metadata and changed-file count.
        """
        ...

    def apply_stage(self, paths: Sequence[str]) -> None:
        """Record the working-tree state of paths in the index.

        Paths missing from the working tree are removed from the index.

        Args:
            paths: Repository-relative POSIX paths.
        """
        ...

    def apply_unstage(self, paths: Sequence[str]) -> None:
        """Reset index entries of paths to their HEAD state.

        Args:
            paths: Repository-relative POSIX paths.
        """
        ...

    def create_commit(self, message: bytes, author: bytes) -> bytes | None:
        """Commit the index on top of HEAD.

        Args:
            message: Commit message.
            author: Identity in "Name <email>" form, used as author and
                committer.

        Returns:
            The new commit id, or None if the index matches HEAD.
        """
        ...
