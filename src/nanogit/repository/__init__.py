"""nanogit repository access.

This package provides a cached, simplified view of a git repository. Reads
are answered from an in-memory store while the repository fingerprint is
unchanged; mutations are forwarded to the engine and invalidate the
affected results.

Classes:
    CachedRepository: The caching facade (status, diff, branches, log,
        stage, unstage, commit).
    DulwichEngine: QueryEngine implementation backed by dulwich.
    FakeEngine: In-memory QueryEngine for tests.
    QueryEngine: Runtime-checkable protocol the facade consumes.
    CacheStore: Bounded LRU store with single-flight computation.

Models:
    Status, FileStatus, ChangeKind: Working tree status.
    DiffScope, DiffTarget, DiffEntry, DiffHunk: Diffs.
    Branch: Local and remote-tracking branches.
    LogRange, Commit: History.
    CommitResult: Result of commit().
    Fingerprint: Repository state snapshot token.

Example:
    >>> from nanogit.repository import CachedRepository, DiffScope, DiffTarget
    >>> with CachedRepository.open(Path.cwd()) as repo:
    ...     staged = repo.diff(DiffScope(target=DiffTarget.STAGED))
"""

from nanogit.repository._cache import (
    DEFAULT_MAX_ENTRIES,
    CacheEntry,
    CacheStats,
    CacheStore,
    QueryKey,
    QueryKind,
)
from nanogit.repository._cached import CachedRepository, RepositoryCacheStats
from nanogit.repository._engine import DulwichEngine, discover_root
from nanogit.repository._fake import FakeEngine
from nanogit.repository._fingerprint import Fingerprint, capture
from nanogit.repository._models import (
    Branch,
    ChangeKind,
    Commit,
    CommitResult,
    DiffEntry,
    DiffHunk,
    DiffScope,
    DiffTarget,
    FileStatus,
    LogRange,
    Status,
)
from nanogit.repository._protocol import QueryEngine
from nanogit.repository._translate import format_patch

__all__ = [
    "DEFAULT_MAX_ENTRIES",
    "Branch",
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "CachedRepository",
    "ChangeKind",
    "Commit",
    "CommitResult",
    "DiffEntry",
    "DiffHunk",
    "DiffScope",
    "DiffTarget",
    "DulwichEngine",
    "FakeEngine",
    "FileStatus",
    "Fingerprint",
    "LogRange",
    "QueryEngine",
    "QueryKey",
    "QueryKind",
    "RepositoryCacheStats",
    "Status",
    "capture",
    "discover_root",
    "format_patch",
]
