"""Repository state fingerprints.

A Fingerprint summarizes the observable state of a repository at an instant.
Two equal fingerprints mean no change was observed between their captures,
so equality is the only signal the read cache uses to decide reuse. Every
read path captures one, so capture only touches HEAD, the ref table and
stat data, never object contents.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

    from nanogit.repository._protocol import QueryEngine

_DIGEST_SIZE: Final = 16


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Comparable snapshot token of repository state.

    Attributes:
        head_ref: Symbolic ref HEAD points to, None when detached.
        head_sha: Hex SHA HEAD resolves to, None for an unborn branch.
        index_stamp: (mtime_ns, size, inode) of the index file.
        refs_digest: Digest over every ref name and target.
        worktree_digest: Digest over working-tree stat data, empty when
            working-tree scanning is disabled.
        mutation_counter: Number of mutations performed through the owning
            CachedRepository. Catches self-induced changes that coarse
            filesystem timestamps would hide.
    """

    head_ref: str | None
    head_sha: str | None
    index_stamp: tuple[int, int, int] | None
    refs_digest: str
    worktree_digest: str
    mutation_counter: int

    def short(self) -> str:
        """Return a compact representation for log output."""
        head = self.head_sha[:8] if self.head_sha else "unborn"
        return (
            f"{head}:{self.refs_digest[:6]}:{self.worktree_digest[:6]}"
            f":{self.mutation_counter}"
        )


def _digest(items: Iterable[tuple[object, ...]]) -> str:
    hasher = hashlib.blake2b(digest_size=_DIGEST_SIZE)
    for item in items:
        for part in item:
            if isinstance(part, bytes):
                hasher.update(part)
            else:
                hasher.update(str(part).encode())
            hasher.update(b"\x00")
        hasher.update(b"\x01")
    return hasher.hexdigest()


def capture(
    engine: QueryEngine,
    mutation_counter: int,
    *,
    scan_worktree: bool = True,
) -> Fingerprint:
    """Capture the current fingerprint of a repository.

    Args:
        engine: The engine to read state signals from.
        mutation_counter: Current mutation counter of the owning repository.
            Read it before calling so that a mutation completing during the
            capture yields a fingerprint no later capture can reproduce.
        scan_worktree: Include working-tree stat data. Disabling this makes
            capture cheaper but hides edits made by other tools until the
            index or refs change.

    Returns:
        The captured Fingerprint.

    Raises:
        EngineError: If the repository state cannot be read.
    """
    state = engine.read_state(scan_worktree=scan_worktree)
    return Fingerprint(
        head_ref=state.head_ref.decode("utf-8", errors="replace")
        if state.head_ref is not None
        else None,
        head_sha=state.head_sha.decode("ascii") if state.head_sha else None,
        index_stamp=state.index_stat,
        refs_digest=_digest(state.refs),
        worktree_digest=_digest(state.worktree) if state.worktree else "",
        mutation_counter=mutation_counter,
    )
