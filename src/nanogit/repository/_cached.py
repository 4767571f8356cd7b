"""Caching facade over a query engine.

CachedRepository answers status, diff, branch and log queries from an
in-memory store whenever the repository fingerprint shows that nothing has
changed since the answer was computed, and forwards every mutation to the
engine. A cached answer is never observably stale: every read captures a
fresh fingerprint, and the fingerprint is part of the cache key.

Example:
    >>> from nanogit.repository import CachedRepository
    >>> with CachedRepository.open(Path("/path/to/repo")) as repo:
    ...     status = repo.status()
    ...     repo.stage(status.untracked)
    ...     result = repo.commit("Add files")
"""

from __future__ import annotations

import dataclasses
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, ClassVar, Final, Self, TypeAlias, TypeVar

import structlog

from nanogit.config import CacheConfig
from nanogit.exceptions import (
    EngineError,
    RepositoryConflictError,
    RepositoryPathViolationError,
)
from nanogit.repository._cache import CacheStats, CacheStore, QueryKey, QueryKind
from nanogit.repository._engine import DulwichEngine
from nanogit.repository._fingerprint import Fingerprint, capture
from nanogit.repository._models import (
    Branch,
    Commit,
    CommitResult,
    DiffEntry,
    DiffScope,
    LogRange,
    Status,
)
from nanogit.repository._translate import (
    to_branches,
    to_commit,
    to_diff,
    to_status,
)
from nanogit.utils._author import get_author_info

if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Hashable, Iterable
    from types import TracebackType

    from structlog.typing import FilteringBoundLogger

    from nanogit.repository._protocol import QueryEngine

    PathLike: TypeAlias = str | os.PathLike[str]

T = TypeVar("T")

_GIT_DIR: Final = ".git"
_ROOT: Final = "."

_STAGE_INVALIDATES: Final = frozenset({QueryKind.STATUS, QueryKind.DIFF})
_COMMIT_INVALIDATES: Final = frozenset(
    {QueryKind.STATUS, QueryKind.DIFF, QueryKind.LOG}
)
# Branches and log depend only on HEAD, refs and objects.
_WORKTREE_QUERIES: Final = frozenset({QueryKind.STATUS, QueryKind.DIFF})


@dataclass(frozen=True, slots=True)
class RepositoryCacheStats:
    """Statistics of both stores owned by a CachedRepository.

    Attributes:
        queries: Fingerprint-keyed query results.
        commits: Commit details keyed by commit id.
        mutations: Number of successful mutations performed.
    """

    queries: CacheStats
    commits: CacheStats
    mutations: int


class CachedRepository:
    """Cached, simplified view of one repository.

    Exactly one instance should exist per repository path; open() enforces
    this through a process-wide registry. Instances built directly from an
    engine are not registered.

    Reads may be issued from any number of threads. Mutations are serialized
    by a writer lock around the engine call, the mutation counter bump and
    the cache invalidation.

    Attributes:
        _registry: Class-level map from repository root to open instance.
        _registry_lock: Class-level lock guarding the registry.
    """

    _registry: ClassVar[dict[Path, CachedRepository]] = {}
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    __slots__: Final = (
        "_commits",
        "_config",
        "_engine",
        "_executor",
        "_last_refresh",
        "_logger",
        "_mutation_counter",
        "_queries",
        "_registered",
        "_write_lock",
    )

    def __init__(
        self,
        engine: QueryEngine,
        *,
        config: CacheConfig | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Wrap an engine with a fresh cache.

        Args:
            engine: The engine answering uncached queries and mutations.
            config: Cache bounds and fingerprint options.
            logger: Structured logger, defaults to the "nanogit" logger.
        """
        self._engine: QueryEngine = engine
        self._config: CacheConfig = config if config is not None else CacheConfig()
        base_logger = logger if logger is not None else structlog.get_logger("nanogit")
        self._logger: FilteringBoundLogger = base_logger.bind(root=str(engine.root))
        self._queries: CacheStore = CacheStore(
            self._config.query_bound, name="queries", logger=self._logger
        )
        self._commits: CacheStore = CacheStore(
            self._config.commit_bound, name="commits", logger=self._logger
        )
        self._write_lock: threading.Lock = threading.Lock()
        self._mutation_counter: int = 0
        self._executor: ThreadPoolExecutor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="nanogit-refresh"
        )
        self._last_refresh: Future[Status] | None = None
        self._registered: bool = False

    # =========================================================================
    # Registry
    # =========================================================================

    @classmethod
    def open(
        cls,
        path: Path,
        *,
        config: CacheConfig | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> CachedRepository:
        """Return the open instance for a repository root, creating it once.

        Args:
            path: Working tree root of the repository.
            config: Cache configuration, used only when a new instance is
                created.
            logger: Structured logger, used only when a new instance is
                created.

        Returns:
            The registered CachedRepository for path.

        Raises:
            NotARepositoryError: If path is not a repository root.
        """
        root = path.resolve()
        with cls._registry_lock:
            existing = cls._registry.get(root)
            if existing is not None:
                return existing
            repo = cls(DulwichEngine(root), config=config, logger=logger)
            repo._registered = True
            cls._registry[root] = repo
        repo._logger.debug("repository_opened")
        return repo

    @classmethod
    def _reset_registry(cls) -> None:
        """Close and forget every registered instance (for testing only)."""
        with cls._registry_lock:
            instances = list(cls._registry.values())
        for instance in instances:
            instance.close()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Deregister, stop the refresh worker and close the engine."""
        if self._registered:
            with self._registry_lock:
                if self._registry.get(self.root) is self:
                    del self._registry[self.root]
            self._registered = False
        self._executor.shutdown(wait=True)
        self._engine.close()
        self._queries.clear()
        self._commits.clear()
        self._logger.debug("repository_closed")

    @property
    def root(self) -> Path:
        """Root directory of the working tree."""
        return self._engine.root

    # =========================================================================
    # Fingerprints and Statistics
    # =========================================================================

    def fingerprint(self, *, worktree: bool = True) -> Fingerprint:
        """Capture the current repository fingerprint.

        Args:
            worktree: Include working-tree stat data when the configuration
                enables it. Queries that depend only on HEAD and refs pass
                False.

        Raises:
            EngineError: If the repository state cannot be read.
        """
        # Read the counter first: a mutation completing during the capture
        # then yields a fingerprint that no later capture reproduces.
        counter = self._mutation_counter
        return capture(
            self._engine,
            counter,
            scan_worktree=worktree and self._config.scan_worktree,
        )

    def cache_stats(self) -> RepositoryCacheStats:
        """Return statistics of both stores."""
        return RepositoryCacheStats(
            queries=self._queries.stats,
            commits=self._commits.stats,
            mutations=self._mutation_counter,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def _query(
        self, kind: QueryKind, params: Hashable, compute: Callable[[], T]
    ) -> T:
        try:
            fingerprint = self.fingerprint(worktree=kind in _WORKTREE_QUERIES)
            key = QueryKey(kind=kind, params=params, fingerprint=fingerprint)
            return self._queries.get_or_compute(key, compute)
        except EngineError as exc:
            self._logger.warning(
                "query_failed",
                kind=kind.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

    def status(self) -> Status:
        """Return the working tree status.

        Raises:
            EngineError: If the engine fails.
        """
        return self._query(
            QueryKind.STATUS, (), lambda: to_status(self._engine.read_status())
        )

    def has_staged_changes(self) -> bool:
        """Check whether a commit would record anything."""
        return self.status().has_staged_changes

    def refresh(self) -> Future[Status]:
        """Compute the status on the background worker.

        The worker goes through the same single-flight path as foreground
        readers, so a concurrent status() call waits for it instead of
        scanning a second time.

        Returns:
            Future resolving to the Status, or to the engine's exception.

        Raises:
            RuntimeError: If the repository is closed.
        """
        future = self._executor.submit(self.status)
        self._last_refresh = future
        return future

    def is_refreshed(self) -> bool:
        """Check whether the most recent refresh() has completed."""
        last = self._last_refresh
        return last is not None and last.done()

    def diff(self, scope: DiffScope | None = None) -> tuple[DiffEntry, ...]:
        """Return the diff selected by scope.

        Args:
            scope: Paths, target and context. Defaults to unstaged changes
                of the whole repository with the configured context.

        Returns:
            Changed files ordered by path.

        Raises:
            RepositoryPathViolationError: If a scope path is outside the
                repository.
            EngineError: If the engine fails.
        """
        if scope is None:
            scope = DiffScope(context_lines=self._config.diff_context)
        scope = dataclasses.replace(scope, paths=self._filter_paths(scope.paths))
        return self._query(
            QueryKind.DIFF,
            scope,
            lambda: to_diff(self._engine.compute_diff(scope), scope.context_lines),
        )

    def branches(self) -> tuple[Branch, ...]:
        """Return local branches followed by remote-tracking branches."""
        return self._query(
            QueryKind.BRANCHES, (), lambda: to_branches(self._engine.list_refs())
        )

    def log(self, log_range: LogRange | None = None) -> tuple[Commit, ...]:
        """Return commits in log order, newest first.

        The ordering is cached per fingerprint. Commit details are cached by
        commit id in a separate store, since a commit never changes once
        written.

        Args:
            log_range: Revisions, limit and path filter. Defaults to the
                full history of HEAD.

        Returns:
            Commits, empty for an unborn HEAD.

        Raises:
            ValueError: If a revision cannot be resolved.
            EngineError: If the engine fails.
        """
        if log_range is None:
            log_range = LogRange()
        log_range = dataclasses.replace(
            log_range, paths=self._filter_paths(log_range.paths)
        )
        shas = self._query(
            QueryKind.LOG, log_range, lambda: self._engine.read_log(log_range)
        )
        return tuple(self._commit(sha) for sha in shas)

    def _commit(self, sha: bytes) -> Commit:
        key = QueryKey(kind=QueryKind.COMMIT, params=(sha,))
        return self._commits.get_or_compute(
            key, lambda: to_commit(self._engine.read_commit(sha))
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def _relative_paths(self, paths: Iterable[PathLike]) -> tuple[str, ...]:
        """Convert paths to repository-relative POSIX strings.

        Relative paths are taken relative to the repository root. The root
        itself becomes ".".

        Raises:
            RepositoryPathViolationError: If a path is outside the working
                tree or inside the git directory.
        """
        root = self.root
        result: list[str] = []
        for path in paths:
            candidate = Path(path)
            if not candidate.is_absolute():
                candidate = root / candidate
            resolved = candidate.resolve()
            if not resolved.is_relative_to(root):
                msg = f"Path is outside repository scope: {path}"
                raise RepositoryPathViolationError(msg, path=candidate, root=root)
            relative = resolved.relative_to(root)
            if _GIT_DIR in relative.parts:
                msg = f"Path is inside the git directory: {path}"
                raise RepositoryPathViolationError(msg, path=candidate, root=root)
            result.append(PurePath(relative).as_posix())
        return tuple(result)

    def _filter_paths(self, paths: Iterable[PathLike]) -> tuple[str, ...]:
        """Normalize read filter paths; the root lifts the restriction."""
        relative = set(self._relative_paths(paths))
        if _ROOT in relative:
            return ()
        return tuple(sorted(relative))

    def _mutate(
        self,
        operation: str,
        action: Callable[[], tuple[str, ...]],
        affected: frozenset[QueryKind],
    ) -> tuple[str, ...]:
        with self._write_lock:
            try:
                result = action()
            except EngineError as exc:
                self._logger.warning(
                    "mutation_failed",
                    operation=operation,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise
            self._mutation_counter += 1
            dropped = self._queries.invalidate_matching(
                lambda key: key.kind in affected
            )
        self._logger.info(operation, paths=len(result), invalidated=dropped)
        return result

    def _expand_root(self, paths: tuple[str, ...], *, staged: bool) -> tuple[str, ...]:
        if _ROOT not in paths:
            return paths
        # Mutations never trust the cache, so read the status afresh.
        status = to_status(self._engine.read_status())
        if staged:
            expanded = {entry.path for entry in status.staged}
            expanded.update(entry.old_path for entry in status.staged if entry.old_path)
        else:
            expanded = set(status.unstaged_paths()) | set(status.untracked)
        expanded.update(path for path in paths if path != _ROOT)
        return tuple(sorted(expanded))

    def stage(self, paths: Iterable[PathLike]) -> tuple[str, ...]:
        """Record the working-tree state of paths in the index.

        Paths missing from the working tree are removed from the index. The
        repository root stages every unstaged and untracked path.

        Args:
            paths: Absolute paths inside the working tree, or paths relative
                to the root.

        Returns:
            The repository-relative paths passed to the engine.

        Raises:
            RepositoryPathViolationError: If a path is outside the working tree.
            EngineError: If the engine fails. The cache is left untouched.
        """
        relative = self._relative_paths(paths)
        if not relative:
            return ()

        def apply() -> tuple[str, ...]:
            expanded = self._expand_root(relative, staged=False)
            if expanded:
                self._engine.apply_stage(expanded)
            return expanded

        return self._mutate("stage", apply, _STAGE_INVALIDATES)

    def unstage(self, paths: Iterable[PathLike]) -> tuple[str, ...]:
        """Reset the index entries of paths to their HEAD state.

        The repository root unstages every staged path.

        Args:
            paths: Absolute paths inside the working tree, or paths relative
                to the root.

        Returns:
            The repository-relative paths passed to the engine.

        Raises:
            RepositoryPathViolationError: If a path is outside the working tree.
            EngineError: If the engine fails. The cache is left untouched.
        """
        relative = self._relative_paths(paths)
        if not relative:
            return ()

        def apply() -> tuple[str, ...]:
            expanded = self._expand_root(relative, staged=True)
            if expanded:
                self._engine.apply_unstage(expanded)
            return expanded

        return self._mutate("unstage", apply, _STAGE_INVALIDATES)

    def commit(self, message: str) -> CommitResult:
        """Commit the index on top of HEAD.

        The identity is resolved from NANOGIT_AUTHOR_NAME and
        NANOGIT_AUTHOR_EMAIL, then from the repository's git config, then
        falls back to "nanogit <nanogit@localhost>".

        Args:
            message: Commit message.

        Returns:
            CommitResult with the new SHA, or no_changes=True if nothing was
            staged (which is not a mutation and leaves the cache untouched).

        Raises:
            ValueError: If message is empty.
            RepositoryConflictError: If HEAD moved during the commit. The
                commit exists, so the cache is invalidated before raising.
            EngineError: If the engine fails otherwise.
        """
        if not message.strip():
            msg = "Commit message must not be empty"
            raise ValueError(msg)
        author = get_author_info(self.root).to_identity()

        with self._write_lock:
            try:
                sha = self._engine.create_commit(message.encode(), author)
            except RepositoryConflictError:
                self._mutation_counter += 1
                _ = self._queries.invalidate_matching(
                    lambda key: key.kind in _COMMIT_INVALIDATES
                )
                self._logger.warning("commit_conflict")
                raise
            except EngineError as exc:
                self._logger.warning(
                    "mutation_failed",
                    operation="commit",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise
            if sha is None:
                self._logger.info("commit_skipped", reason="no_changes")
                return CommitResult(sha=None, no_changes=True)
            self._mutation_counter += 1
            dropped = self._queries.invalidate_matching(
                lambda key: key.kind in _COMMIT_INVALIDATES
            )

        sha_hex = sha.decode("ascii")
        self._logger.info("commit", sha=sha_hex, invalidated=dropped)
        return CommitResult(sha=sha_hex, no_changes=False)
