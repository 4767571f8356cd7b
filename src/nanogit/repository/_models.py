# ruff: noqa: TC003  # datetime needed at runtime for dataclass fields
"""nanogit repository models.

This module defines the simplified, git-terminology result types returned by
CachedRepository. All models are frozen and carry no handle into the object
store, so they can be shared freely between threads and cached indefinitely.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ChangeKind(StrEnum):
    """Classification of a change to a single path."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class DiffTarget(StrEnum):
    """Which two states of the repository a diff compares.

    Values mirror the command-line forms ``git diff`` (unstaged),
    ``git diff --cached`` (staged) and ``git diff HEAD`` (head).
    """

    UNSTAGED = "unstaged"
    STAGED = "staged"
    HEAD = "head"


@dataclass(frozen=True, slots=True)
class FileStatus:
    """Status of a single path.

    Attributes:
        path: Repository-relative POSIX path.
        change: The kind of change.
        old_path: Previous path when change is RENAMED, None otherwise.
    """

    path: str
    change: ChangeKind
    old_path: str | None = None


@dataclass(frozen=True, slots=True)
class Status:
    """Working tree status snapshot.

    Attributes:
        staged: Changes recorded in the index relative to HEAD.
        unstaged: Changes in the working tree relative to the index.
        untracked: Paths not tracked by git (ignored files excluded).
    """

    staged: tuple[FileStatus, ...] = ()
    unstaged: tuple[FileStatus, ...] = ()
    untracked: tuple[str, ...] = ()

    @property
    def is_clean(self) -> bool:
        """True if there is nothing staged, modified or untracked."""
        return not (self.staged or self.unstaged or self.untracked)

    @property
    def has_staged_changes(self) -> bool:
        """True if a commit would record something."""
        return bool(self.staged)

    def staged_paths(self) -> tuple[str, ...]:
        """Return the paths of all staged changes."""
        return tuple(entry.path for entry in self.staged)

    def unstaged_paths(self) -> tuple[str, ...]:
        """Return the paths of all unstaged changes."""
        return tuple(entry.path for entry in self.unstaged)


@dataclass(frozen=True, slots=True)
class DiffScope:
    """Parameters of a diff query.

    Attributes:
        paths: Repository-relative paths limiting the diff. A file matches
            when it equals a scope path or lies beneath it. Empty means
            the whole repository.
        target: Which states are compared.
        context_lines: Number of unchanged lines around each change.
    """

    paths: tuple[str, ...] = ()
    target: DiffTarget = DiffTarget.UNSTAGED
    context_lines: int = 3

    def matches(self, path: str) -> bool:
        """Check whether a repository-relative path falls within this scope.

        Args:
            path: Repository-relative POSIX path.

        Returns:
            True if the scope is unrestricted (no paths, or the root ".")
            or the path is covered.
        """
        if not self.paths or "." in self.paths:
            return True
        return any(
            path == scope or path.startswith(scope.rstrip("/") + "/")
            for scope in self.paths
        )


@dataclass(frozen=True, slots=True)
class DiffHunk:
    """One hunk of a unified diff.

    Attributes:
        old_start: 1-based first line in the old file (0 for an empty range).
        old_count: Number of old lines covered.
        new_start: 1-based first line in the new file (0 for an empty range).
        new_count: Number of new lines covered.
        lines: Hunk body, each line prefixed with "+", "-" or " " and
            without its trailing newline.
    """

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: tuple[str, ...]

    @property
    def header(self) -> str:
        """The ``@@ -a,b +c,d @@`` header line."""
        return (
            f"@@ -{_format_range(self.old_start, self.old_count)} "
            f"+{_format_range(self.new_start, self.new_count)} @@"
        )


def _format_range(start: int, count: int) -> str:
    if count == 1:
        return str(start)
    return f"{start},{count}"


@dataclass(frozen=True, slots=True)
class DiffEntry:
    """Diff of a single file.

    Attributes:
        path: Repository-relative path (new path for renames).
        change: The kind of change.
        old_path: Previous path if renamed, None otherwise.
        hunks: Hunks of the textual diff (empty for binary files).
        is_binary: True if either side is binary.
        additions: Number of added lines.
        deletions: Number of deleted lines.
    """

    path: str
    change: ChangeKind
    old_path: str | None = None
    hunks: tuple[DiffHunk, ...] = ()
    is_binary: bool = False
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True, slots=True)
class LogRange:
    """Parameters of a log query.

    Attributes:
        include: Revisions whose history is listed (default HEAD).
        exclude: Revisions whose history is left out (``a..b`` style).
        max_entries: Maximum number of commits, None for all.
        paths: Only list commits touching these repository-relative paths.
    """

    include: tuple[str, ...] = ("HEAD",)
    exclude: tuple[str, ...] = ()
    max_entries: int | None = None
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Branch:
    """A local or remote-tracking branch.

    Attributes:
        name: Short branch name ("main", "origin/main").
        target: Commit SHA the branch points at.
        is_head: True if HEAD currently points at this branch.
        is_remote: True for remote-tracking branches.
    """

    name: str
    target: str
    is_head: bool = False
    is_remote: bool = False


@dataclass(frozen=True, slots=True)
class Commit:
    """Information about a single commit.

    Attributes:
        sha: Full 40-character commit SHA hex string.
        message: Complete commit message (subject + body).
        author_name: Author name from commit.
        author_email: Author email from commit.
        timestamp: Author timestamp with the author's timezone.
        parent_shas: SHA hex strings of parent commits (empty for a root commit).
        files_changed: Number of files changed relative to the first parent.
    """

    sha: str
    message: str
    author_name: str
    author_email: str
    timestamp: datetime
    parent_shas: tuple[str, ...] = field(default=())
    files_changed: int = 0

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        lines = self.message.splitlines()
        return lines[0] if lines else ""


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Result of a commit operation.

    Attributes:
        sha: Commit SHA hex string, None if no_changes.
        no_changes: True if nothing was staged and nothing was committed.
    """

    sha: str | None
    no_changes: bool
