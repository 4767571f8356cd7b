# ruff: noqa: TC003  # Path needed at runtime for dataclass fields
"""Fake query engine for testing.

This module provides a FakeEngine class that implements QueryEngine in
memory, without requiring an actual Git repository. It counts calls per
operation and can inject failures or run hooks before an operation, which
makes cache behavior observable in tests.
"""

import hashlib
import zlib
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from nanogit.repository._models import DiffScope, DiffTarget, LogRange
from nanogit.repository._raw import (
    RawChange,
    RawCommit,
    RawFileDiff,
    RawRefs,
    RawState,
    RawStatus,
)

_BASE_TIME = 1_700_000_000

Snapshot: TypeAlias = dict[str, bytes]


def _under(path: str, prefixes: Sequence[str]) -> bool:
    return any(
        path == prefix or path.startswith(prefix.rstrip("/") + "/")
        for prefix in prefixes
    )


def _changes(old: Snapshot, new: Snapshot) -> list[RawChange]:
    changes: list[RawChange] = []
    for path in sorted(old.keys() | new.keys()):
        encoded = path.encode()
        if path not in old:
            changes.append(RawChange(type="add", old_path=None, new_path=encoded))
        elif path not in new:
            changes.append(RawChange(type="delete", old_path=encoded, new_path=None))
        elif old[path] != new[path]:
            changes.append(RawChange(type="modify", old_path=encoded, new_path=encoded))
    return changes


def _file_diffs(
    old: Snapshot, new: Snapshot, scope: DiffScope
) -> tuple[RawFileDiff, ...]:
    return tuple(
        RawFileDiff(
            change=change,
            old_content=old.get((change.old_path or b"").decode(), b""),
            new_content=new.get((change.new_path or b"").decode(), b""),
        )
        for change in _changes(old, new)
        if scope.matches((change.new_path or change.old_path or b"").decode())
    )


@dataclass(slots=True)
class FakeEngine:
    """In-memory QueryEngine for testing.

    The fake keeps three snapshots (HEAD tree, index, working tree) as plain
    path-to-content dictionaries. Tests edit them through write() and
    delete() to simulate changes made by other tools.

    Attributes:
        root: Reported repository root.
        head_branch: Branch HEAD points to, None when detached.
        calls: Number of calls per operation name; "scan_worktree" counts
            read_state calls that included working-tree data.
        failures: Exceptions to raise, consumed one per call, per operation.
        hooks: Callables run at the start of an operation (after counting).

    Example:
        >>> engine = FakeEngine()
        >>> engine.write("a.txt", b"hello\\n")
        >>> engine.read_status().untracked
        (b'a.txt',)
        >>> engine.calls["read_status"]
        1
    """

    root: Path = field(default_factory=lambda: Path("/fake/project"))
    head_branch: str | None = "main"
    index: Snapshot = field(default_factory=dict)
    worktree: Snapshot = field(default_factory=dict)
    branches: dict[str, bytes] = field(default_factory=dict)
    remote_branches: dict[str, bytes] = field(default_factory=dict)
    commits: dict[bytes, RawCommit] = field(default_factory=dict)
    trees: dict[bytes, Snapshot] = field(default_factory=dict)
    detached_sha: bytes | None = None
    calls: Counter[str] = field(default_factory=Counter)
    failures: dict[str, list[BaseException]] = field(default_factory=dict)
    hooks: dict[str, Callable[[], None]] = field(default_factory=dict)
    closed: bool = False
    _index_version: int = 0

    # =========================================================================
    # Test Helpers
    # =========================================================================

    def write(self, path: str, content: bytes) -> None:
        """Create or overwrite a working-tree file."""
        self.worktree[path] = content

    def delete(self, path: str) -> None:
        """Remove a working-tree file."""
        _ = self.worktree.pop(path, None)

    def fail_next(self, operation: str, error: BaseException) -> None:
        """Make the next call of operation raise error."""
        self.failures.setdefault(operation, []).append(error)

    def head_sha(self) -> bytes | None:
        """Return the commit HEAD resolves to."""
        if self.head_branch is None:
            return self.detached_sha
        return self.branches.get(self.head_branch)

    def head_tree(self) -> Snapshot:
        """Return the files committed at HEAD."""
        sha = self.head_sha()
        return dict(self.trees[sha]) if sha is not None else {}

    def _enter(self, operation: str) -> None:
        if self.closed:
            msg = f"Engine is closed: {self.root}"
            raise RuntimeError(msg)
        self.calls[operation] += 1
        hook = self.hooks.get(operation)
        if hook is not None:
            hook()
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    # =========================================================================
    # QueryEngine Methods
    # =========================================================================

    def close(self) -> None:
        """Mark the engine closed."""
        self.closed = True

    def read_state(self, *, scan_worktree: bool = True) -> RawState:
        """Report HEAD, refs, an index version stamp and content checksums."""
        self._enter("read_state")
        if scan_worktree:
            self.calls["scan_worktree"] += 1
        worktree = (
            tuple(
                (path.encode(), zlib.crc32(content), len(content))
                for path, content in sorted(self.worktree.items())
            )
            if scan_worktree
            else ()
        )
        return RawState(
            head_ref=self._head_ref(),
            head_sha=self.head_sha(),
            index_stat=(self._index_version, len(self.index), 0),
            refs=self._refs(),
            worktree=worktree,
        )

    def _head_ref(self) -> bytes | None:
        if self.head_branch is None:
            return None
        return f"refs/heads/{self.head_branch}".encode()

    def _refs(self) -> tuple[tuple[bytes, bytes], ...]:
        local = [
            (f"refs/heads/{name}".encode(), sha) for name, sha in self.branches.items()
        ]
        remote = [
            (f"refs/remotes/{name}".encode(), sha)
            for name, sha in self.remote_branches.items()
        ]
        return tuple(sorted(local + remote))

    def read_status(self) -> RawStatus:
        """Compare HEAD, index and working tree snapshots."""
        self._enter("read_status")
        unstaged = sorted(
            path
            for path, content in self.index.items()
            if self.worktree.get(path) != content
        )
        return RawStatus(
            staged=tuple(_changes(self.head_tree(), self.index)),
            unstaged=tuple(path.encode() for path in unstaged),
            missing=frozenset(
                path.encode() for path in unstaged if path not in self.worktree
            ),
            untracked=tuple(
                sorted(
                    path.encode() for path in self.worktree if path not in self.index
                )
            ),
        )

    def compute_diff(self, scope: DiffScope) -> tuple[RawFileDiff, ...]:
        """Diff the snapshots selected by the scope target."""
        self._enter("compute_diff")
        match scope.target:
            case DiffTarget.STAGED:
                return _file_diffs(self.head_tree(), self.index, scope)
            case DiffTarget.UNSTAGED:
                tracked = {
                    path: self.worktree[path]
                    for path in self.index
                    if path in self.worktree
                }
                return _file_diffs(self.index, tracked, scope)
            case DiffTarget.HEAD:
                head = self.head_tree()
                tracked = {
                    path: content
                    for path, content in self.worktree.items()
                    if path in head or path in self.index
                }
                return _file_diffs(head, tracked, scope)

    def list_refs(self) -> RawRefs:
        """Report local and remote branches."""
        self._enter("list_refs")
        return RawRefs(
            head_ref=self._head_ref(), head_sha=self.head_sha(), refs=self._refs()
        )

    def _resolve(self, revision: str) -> bytes | None:
        if revision == "HEAD":
            return self.head_sha()
        if revision in self.branches:
            return self.branches[revision]
        if revision in self.remote_branches:
            return self.remote_branches[revision]
        matches = [sha for sha in self.commits if sha.decode().startswith(revision)]
        if len(matches) != 1:
            msg = f"Unknown revision: {revision}"
            raise ValueError(msg)
        return matches[0]

    def _ancestors(self, sha: bytes) -> list[bytes]:
        order: list[bytes] = []
        pending = [sha]
        seen: set[bytes] = set()
        while pending:
            current = pending.pop(0)
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            pending.extend(self.commits[current].parents)
        return order

    def _touches(self, sha: bytes, paths: Sequence[str]) -> bool:
        commit = self.commits[sha]
        parent = self.trees[commit.parents[0]] if commit.parents else {}
        return any(
            _under((change.new_path or change.old_path or b"").decode(), paths)
            for change in _changes(parent, self.trees[sha])
        )

    def read_log(self, log_range: LogRange) -> tuple[bytes, ...]:
        """Walk parents breadth-first from the included revisions."""
        self._enter("read_log")
        excluded: set[bytes] = set()
        for revision in log_range.exclude:
            sha = self._resolve(revision)
            if sha is not None:
                excluded.update(self._ancestors(sha))
        result: list[bytes] = []
        for revision in log_range.include:
            sha = self._resolve(revision)
            if sha is None:
                continue
            for ancestor in self._ancestors(sha):
                if ancestor in excluded or ancestor in result:
                    continue
                if log_range.paths and not self._touches(ancestor, log_range.paths):
                    continue
                result.append(ancestor)
        result.sort(key=lambda sha: self.commits[sha].author_time, reverse=True)
        if log_range.max_entries is not None:
            result = result[: log_range.max_entries]
        return tuple(result)

    def read_commit(self, sha: bytes) -> RawCommit:
        """Return a stored commit."""
        self._enter("read_commit")
        return self.commits[sha]

    def apply_stage(self, paths: Sequence[str]) -> None:
        """Copy working-tree content under paths into the index."""
        self._enter("apply_stage")
        gone = [p for p in self.index if _under(p, paths) and p not in self.worktree]
        for path in gone:
            del self.index[path]
        for path, content in self.worktree.items():
            if _under(path, paths):
                self.index[path] = content
        self._index_version += 1

    def apply_unstage(self, paths: Sequence[str]) -> None:
        """Reset index content under paths to HEAD."""
        self._enter("apply_unstage")
        head = self.head_tree()
        for path in [p for p in self.index if _under(p, paths)]:
            del self.index[path]
        for path, content in head.items():
            if _under(path, paths):
                self.index[path] = content
        self._index_version += 1

    def create_commit(self, message: bytes, author: bytes) -> bytes | None:
        """Record the index as a new commit on the current branch."""
        self._enter("create_commit")
        parent = self.head_sha()
        if self.index == self.head_tree():
            return None
        sha = hashlib.sha1(  # noqa: S324
            b"commit %d" % len(self.commits) + message, usedforsecurity=False
        ).hexdigest().encode("ascii")
        parent_tree = self.trees[parent] if parent is not None else {}
        self.commits[sha] = RawCommit(
            sha=sha,
            author=author,
            author_time=_BASE_TIME + len(self.commits) * 60,
            author_timezone=0,
            message=message,
            parents=(parent,) if parent is not None else (),
            files_changed=len(_changes(parent_tree, self.index)),
        )
        self.trees[sha] = dict(self.index)
        if self.head_branch is None:
            self.detached_sha = sha
        else:
            self.branches[self.head_branch] = sha
        return sha
