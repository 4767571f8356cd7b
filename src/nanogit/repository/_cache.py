"""In-memory query cache with single-flight computation.

CacheStore maps QueryKey values to computed results. Keys carry the
repository fingerprint they were computed under, so a changed repository
simply produces new keys and old entries become unreachable; invalidation and
LRU eviction only reclaim memory. The store guarantees at most one
concurrent computation per key: callers racing on the same uncached key wait
on a shared future and observe the same value or the same exception.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, TypeVar

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from structlog.typing import FilteringBoundLogger

    from nanogit.repository._fingerprint import Fingerprint

T = TypeVar("T")

DEFAULT_MAX_ENTRIES: Final = 256


class QueryKind(StrEnum):
    """Closed set of cacheable query kinds."""

    STATUS = "status"
    DIFF = "diff"
    BRANCHES = "branches"
    LOG = "log"
    COMMIT = "commit"


@dataclass(frozen=True, slots=True)
class QueryKey:
    """Identity of one cacheable computation.

    Attributes:
        kind: The query kind.
        params: Hashable query parameters (scope, range, commit id).
        fingerprint: Repository fingerprint the result is valid for. None
            only for immutable data keyed by content identity (commits).
    """

    kind: QueryKind
    params: Hashable = ()
    fingerprint: Fingerprint | None = None


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A computed value together with the key it was computed for."""

    key: QueryKey
    value: Any  # pyright: ignore[reportExplicitAny]


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters describing cache effectiveness.

    Attributes:
        size: Number of stored entries.
        max_entries: Configured bound, None when unbounded.
        hits: Lookups answered from a stored entry.
        misses: Lookups that started a computation.
        shared: Lookups that joined an in-flight computation.
        evictions: Entries dropped by the LRU bound.
        invalidations: Entries dropped by invalidate_matching.
        failures: Computations that raised.
    """

    size: int
    max_entries: int | None
    hits: int
    misses: int
    shared: int
    evictions: int
    invalidations: int
    failures: int


class CacheStore:
    """Bounded LRU table of query results with single-flight semantics.

    Example:
        >>> store = CacheStore(max_entries=2)
        >>> key = QueryKey(QueryKind.STATUS)
        >>> store.get_or_compute(key, lambda: "clean")
        'clean'
        >>> store.get(key).value
        'clean'
    """

    __slots__: Final = (
        "_discarded",
        "_entries",
        "_evictions",
        "_failures",
        "_hits",
        "_in_flight",
        "_invalidations",
        "_lock",
        "_logger",
        "_max_entries",
        "_misses",
        "_name",
        "_shared",
    )

    def __init__(
        self,
        max_entries: int | None = DEFAULT_MAX_ENTRIES,
        *,
        name: str = "queries",
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            max_entries: Maximum number of stored entries, None for no bound.
            name: Store name bound to log entries.
            logger: Structured logger, defaults to the "nanogit" logger.

        Raises:
            ValueError: If max_entries is not positive.
        """
        if max_entries is not None and max_entries <= 0:
            msg = f"max_entries must be positive or None, got {max_entries}"
            raise ValueError(msg)
        self._max_entries: int | None = max_entries
        self._name: str = name
        self._entries: OrderedDict[QueryKey, CacheEntry] = OrderedDict()
        self._in_flight: dict[QueryKey, Future[Any]] = {}  # pyright: ignore[reportExplicitAny]
        self._discarded: set[QueryKey] = set()
        self._lock: threading.Lock = threading.Lock()
        base_logger = logger if logger is not None else structlog.get_logger("nanogit")
        self._logger: FilteringBoundLogger = base_logger.bind(cache=name)
        self._hits: int = 0
        self._misses: int = 0
        self._shared: int = 0
        self._evictions: int = 0
        self._invalidations: int = 0
        self._failures: int = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    @property
    def max_entries(self) -> int | None:
        """The configured bound, None when unbounded."""
        return self._max_entries

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, key: QueryKey) -> CacheEntry | None:
        """Look up a stored entry.

        Marks the entry as most recently used. Never starts a computation and
        never waits for one.

        Args:
            key: The key to look up.

        Returns:
            The stored entry, or None.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def get_or_compute(self, key: QueryKey, compute: Callable[[], T]) -> T:
        """Return the cached value for key, computing it at most once.

        If the key is stored, the stored value is returned. If another caller
        is already computing it, this call waits for that computation and
        returns its value or raises its exception. Otherwise this caller runs
        compute, stores the value and wakes the waiters. Exceptions are
        propagated unchanged and never stored, so the next call retries.

        Args:
            key: The key identifying the computation.
            compute: Zero-argument callable producing the value.

        Returns:
            The cached or freshly computed value.

        Raises:
            Exception: Whatever compute raised, for the computing caller and
                every caller that joined it.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
                self._hits += 1
            else:
                pending = self._in_flight.get(key)
                if pending is not None:
                    self._shared += 1
                else:
                    self._misses += 1
                    future: Future[T] = Future()
                    self._in_flight[key] = future

        if entry is not None:
            self._logger.debug("cache_hit", kind=key.kind.value)
            return entry.value  # pyright: ignore[reportAny]

        if pending is not None:
            # Another caller owns the computation; share its outcome.
            self._logger.debug("cache_wait", kind=key.kind.value)
            return pending.result()  # pyright: ignore[reportAny]

        self._logger.debug("cache_miss", kind=key.kind.value)
        try:
            value = compute()
        except BaseException as exc:
            with self._lock:
                del self._in_flight[key]
                self._discarded.discard(key)
                self._failures += 1
            future.set_exception(exc)
            self._logger.debug(
                "cache_compute_failed", kind=key.kind.value, error=repr(exc)
            )
            raise

        evicted = 0
        with self._lock:
            del self._in_flight[key]
            if key in self._discarded:
                self._discarded.discard(key)
            else:
                self._entries[key] = CacheEntry(key=key, value=value)
                evicted = self._evict_locked()
        future.set_result(value)
        if evicted:
            self._logger.debug("cache_evicted", count=evicted)
        return value

    # =========================================================================
    # Invalidation and Eviction
    # =========================================================================

    def invalidate_matching(self, predicate: Callable[[QueryKey], bool]) -> int:
        """Drop every entry whose key satisfies predicate.

        Computations in flight for a matching key still deliver their result
        to the callers waiting on them, but the result is not stored.

        Args:
            predicate: Function deciding whether a key is affected.

        Returns:
            Number of stored entries dropped.
        """
        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
            self._discarded.update(key for key in self._in_flight if predicate(key))
            self._invalidations += len(doomed)
        if doomed:
            self._logger.debug("cache_invalidated", count=len(doomed))
        return len(doomed)

    def evict_if_needed(self) -> int:
        """Enforce the size bound by dropping least recently used entries.

        Entries still being computed are not in the table yet and are
        therefore never evicted.

        Returns:
            Number of entries evicted.
        """
        with self._lock:
            evicted = self._evict_locked()
        if evicted:
            self._logger.debug("cache_evicted", count=evicted)
        return evicted

    def _evict_locked(self) -> int:
        if self._max_entries is None:
            return 0
        evicted = 0
        while len(self._entries) > self._max_entries:
            _ = self._entries.popitem(last=False)
            evicted += 1
        self._evictions += evicted
        return evicted

    def clear(self) -> None:
        """Drop every stored entry. In-flight computations are not stored."""
        with self._lock:
            self._invalidations += len(self._entries)
            self._entries.clear()
            self._discarded.update(self._in_flight)

    # =========================================================================
    # Statistics
    # =========================================================================

    @property
    def stats(self) -> CacheStats:
        """Return a snapshot of the store counters."""
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_entries=self._max_entries,
                hits=self._hits,
                misses=self._misses,
                shared=self._shared,
                evictions=self._evictions,
                invalidations=self._invalidations,
                failures=self._failures,
            )
