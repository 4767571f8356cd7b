"""Engine-native result shapes.

These are the byte-oriented values a QueryEngine hands back before
translation into the simplified model. They mirror what dulwich exposes
(bytes paths, raw author lines, git timezone offsets) so that engines stay
thin and all interpretation lives in ``_translate``.
"""

from dataclasses import dataclass, field
from typing import Literal, TypeAlias

RawChangeType: TypeAlias = Literal["add", "modify", "delete", "rename"]


@dataclass(frozen=True, slots=True)
class RawState:
    """Cheap-to-read repository state used for fingerprinting.

    Attributes:
        head_ref: Symbolic ref HEAD points to, None when detached.
        head_sha: Commit HEAD resolves to, None for an unborn branch.
        index_stat: (mtime_ns, size, inode) of the index file, None if absent.
        refs: Every ref name mapped to its target.
        worktree: (path, mtime_ns, size) for tracked files and working
            directories. Empty when working-tree scanning is disabled.
    """

    head_ref: bytes | None
    head_sha: bytes | None
    index_stat: tuple[int, int, int] | None
    refs: tuple[tuple[bytes, bytes], ...] = ()
    worktree: tuple[tuple[bytes, int, int], ...] = ()


@dataclass(frozen=True, slots=True)
class RawChange:
    """A single tree-level change.

    Attributes:
        type: dulwich change type.
        old_path: Path before the change, None for additions.
        new_path: Path after the change, None for deletions.
    """

    type: RawChangeType
    old_path: bytes | None
    new_path: bytes | None


@dataclass(frozen=True, slots=True)
class RawStatus:
    """Raw status scan.

    Attributes:
        staged: Changes between the HEAD tree and the index.
        unstaged: Tracked paths whose working copy differs from the index.
        missing: Subset of unstaged paths that no longer exist on disk.
        untracked: Untracked, non-ignored paths.
    """

    staged: tuple[RawChange, ...] = ()
    unstaged: tuple[bytes, ...] = ()
    missing: frozenset[bytes] = field(default_factory=frozenset)
    untracked: tuple[bytes, ...] = ()


@dataclass(frozen=True, slots=True)
class RawFileDiff:
    """Both sides of a changed file.

    Attributes:
        change: Tree-level change description.
        old_content: Content before the change (empty for additions).
        new_content: Content after the change (empty for deletions).
    """

    change: RawChange
    old_content: bytes = b""
    new_content: bytes = b""


@dataclass(frozen=True, slots=True)
class RawRefs:
    """Ref table snapshot.

    Attributes:
        head_ref: Symbolic ref HEAD points to, None when detached.
        head_sha: Commit HEAD resolves to, None for an unborn branch.
        refs: Branch ref names (refs/heads/*, refs/remotes/*) to targets.
    """

    head_ref: bytes | None
    head_sha: bytes | None
    refs: tuple[tuple[bytes, bytes], ...] = ()


@dataclass(frozen=True, slots=True)
class RawCommit:
    """A commit object as stored.

    Attributes:
        sha: Commit id as hex bytes (dulwich object id).
        author: Author line in "Name <email>" form.
        author_time: Unix timestamp of authorship.
        author_timezone: Offset in seconds as dulwich reports it (east of UTC
            is positive).
        message: Raw commit message.
        parents: Parent commit ids.
        files_changed: Number of paths changed against the first parent.
    """

    sha: bytes
    author: bytes
    author_time: int
    author_timezone: int
    message: bytes
    parents: tuple[bytes, ...] = ()
    files_changed: int = 0
