"""Translation of engine-native results into the simplified model.

Every function here is pure: raw engine values in, frozen model values out.
Collections are sorted so that equal repository states translate into equal
(and therefore cache-comparable) values.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from difflib import SequenceMatcher
from typing import TYPE_CHECKING, Final

from dulwich.patch import is_binary

from nanogit.repository._models import (
    Branch,
    ChangeKind,
    Commit,
    DiffEntry,
    DiffHunk,
    FileStatus,
    Status,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from nanogit.repository._raw import (
        RawChange,
        RawCommit,
        RawFileDiff,
        RawRefs,
        RawStatus,
    )

_LOCAL_PREFIX: Final = "refs/heads/"
_REMOTE_PREFIX: Final = "refs/remotes/"

_CHANGE_KINDS: Final[dict[str, ChangeKind]] = {
    "add": ChangeKind.ADDED,
    "modify": ChangeKind.MODIFIED,
    "delete": ChangeKind.DELETED,
    "rename": ChangeKind.RENAMED,
}


def decode_path(path: bytes) -> str:
    """Decode a git path, replacing undecodable bytes."""
    return path.decode("utf-8", errors="replace")


# =============================================================================
# Status
# =============================================================================


def _change_to_file_status(change: RawChange) -> FileStatus:
    kind = _CHANGE_KINDS[change.type]
    if kind is ChangeKind.DELETED:
        path = change.old_path
    else:
        path = change.new_path
    old_path = change.old_path if kind is ChangeKind.RENAMED else None
    return FileStatus(
        path=decode_path(path or b""),
        change=kind,
        old_path=decode_path(old_path) if old_path is not None else None,
    )


def to_status(raw: RawStatus) -> Status:
    """Translate a raw status scan.

    Args:
        raw: Result of QueryEngine.read_status().

    Returns:
        Status with staged and unstaged changes classified and all lists
        sorted by path.
    """
    staged = sorted(
        (_change_to_file_status(change) for change in raw.staged),
        key=lambda entry: entry.path,
    )
    unstaged = sorted(
        (
            FileStatus(
                path=decode_path(path),
                change=ChangeKind.DELETED
                if path in raw.missing
                else ChangeKind.MODIFIED,
            )
            for path in raw.unstaged
        ),
        key=lambda entry: entry.path,
    )
    untracked = sorted(decode_path(path) for path in raw.untracked)
    return Status(
        staged=tuple(staged),
        unstaged=tuple(unstaged),
        untracked=tuple(untracked),
    )


# =============================================================================
# Diff
# =============================================================================


def _split_lines(content: bytes) -> list[str]:
    return content.decode("utf-8", errors="replace").splitlines()


def build_hunks(
    old_lines: Sequence[str],
    new_lines: Sequence[str],
    context_lines: int = 3,
) -> tuple[DiffHunk, ...]:
    """Build unified-diff hunks between two line sequences.

    Uses the same grouping as ``difflib.unified_diff`` so ranges match what
    ``git diff`` prints for the same input.

    Args:
        old_lines: Lines before the change, without line endings.
        new_lines: Lines after the change, without line endings.
        context_lines: Unchanged lines kept around each change.

    Returns:
        Tuple of hunks, empty when the sequences are equal.
    """
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    hunks: list[DiffHunk] = []
    for group in matcher.get_grouped_opcodes(context_lines):
        first, last = group[0], group[-1]
        old_start, old_end = first[1], last[2]
        new_start, new_end = first[3], last[4]
        lines: list[str] = []
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                lines.extend(f" {line}" for line in old_lines[i1:i2])
                continue
            if tag in {"replace", "delete"}:
                lines.extend(f"-{line}" for line in old_lines[i1:i2])
            if tag in {"replace", "insert"}:
                lines.extend(f"+{line}" for line in new_lines[j1:j2])
        old_count = old_end - old_start
        new_count = new_end - new_start
        hunks.append(
            DiffHunk(
                # git reports an empty range as starting before line 1
                old_start=old_start + 1 if old_count else old_start,
                old_count=old_count,
                new_start=new_start + 1 if new_count else new_start,
                new_count=new_count,
                lines=tuple(lines),
            )
        )
    return tuple(hunks)


def to_diff_entry(raw: RawFileDiff, context_lines: int = 3) -> DiffEntry:
    """Translate one changed file.

    Args:
        raw: Both sides of the file.
        context_lines: Unchanged lines kept around each change.

    Returns:
        DiffEntry with hunks and line statistics. Binary files carry no
        hunks and zero line counts.
    """
    status = _change_to_file_status(raw.change)
    if is_binary(raw.old_content) or is_binary(raw.new_content):
        return DiffEntry(
            path=status.path,
            change=status.change,
            old_path=status.old_path,
            is_binary=True,
        )

    hunks = build_hunks(
        _split_lines(raw.old_content),
        _split_lines(raw.new_content),
        context_lines,
    )
    additions = sum(
        1 for hunk in hunks for line in hunk.lines if line.startswith("+")
    )
    deletions = sum(
        1 for hunk in hunks for line in hunk.lines if line.startswith("-")
    )
    return DiffEntry(
        path=status.path,
        change=status.change,
        old_path=status.old_path,
        hunks=hunks,
        additions=additions,
        deletions=deletions,
    )


def to_diff(
    raw: Sequence[RawFileDiff], context_lines: int = 3
) -> tuple[DiffEntry, ...]:
    """Translate a raw diff, dropping files whose content is unchanged."""
    entries = (to_diff_entry(item, context_lines) for item in raw)
    return tuple(
        sorted(
            (
                entry
                for entry in entries
                if entry.hunks
                or entry.is_binary
                or entry.change is not ChangeKind.MODIFIED
            ),
            key=lambda entry: entry.path,
        )
    )


def format_patch(entries: Sequence[DiffEntry]) -> str:
    """Render diff entries as git-style patch text.

    Args:
        entries: Entries as returned by CachedRepository.diff().

    Returns:
        Patch text, empty when there are no entries.
    """
    parts: list[str] = []
    for entry in entries:
        old = entry.old_path or entry.path
        parts.append(f"diff --git a/{old} b/{entry.path}\n")
        from_file = f"a/{old}"
        to_file = f"b/{entry.path}"
        if entry.change is ChangeKind.ADDED:
            parts.append("new file mode 100644\n")
            from_file = "/dev/null"
        elif entry.change is ChangeKind.DELETED:
            parts.append("deleted file mode 100644\n")
            to_file = "/dev/null"
        elif entry.change is ChangeKind.RENAMED:
            parts.append(f"rename from {old}\nrename to {entry.path}\n")
        if entry.is_binary:
            parts.append(f"Binary files {from_file} and {to_file} differ\n")
            continue
        if not entry.hunks:
            continue
        parts.append(f"--- {from_file}\n+++ {to_file}\n")
        for hunk in entry.hunks:
            parts.append(hunk.header + "\n")
            parts.extend(line + "\n" for line in hunk.lines)
    return "".join(parts)


# =============================================================================
# Branches
# =============================================================================


def to_branches(raw: RawRefs) -> tuple[Branch, ...]:
    """Translate the ref table into branches.

    Local branches come first, then remote-tracking branches, each sorted
    by name. Symbolic remote HEAD refs (``origin/HEAD``) are skipped.

    Args:
        raw: Result of QueryEngine.list_refs().

    Returns:
        Tuple of Branch values.
    """
    local: list[Branch] = []
    remote: list[Branch] = []
    for ref, target in raw.refs:
        ref_name = decode_path(ref)
        sha = target.decode("ascii")
        if ref_name.startswith(_LOCAL_PREFIX):
            local.append(
                Branch(
                    name=ref_name.removeprefix(_LOCAL_PREFIX),
                    target=sha,
                    is_head=ref == raw.head_ref,
                )
            )
        elif ref_name.startswith(_REMOTE_PREFIX):
            name = ref_name.removeprefix(_REMOTE_PREFIX)
            if name.endswith("/HEAD"):
                continue
            remote.append(Branch(name=name, target=sha, is_remote=True))
    local.sort(key=lambda branch: branch.name)
    remote.sort(key=lambda branch: branch.name)
    return (*local, *remote)


# =============================================================================
# Commits
# =============================================================================


def parse_author_line(
    author: bytes, author_time: int, author_tz: int
) -> tuple[str, str, datetime]:
    """Parse an author line into name, email and datetime.

    Args:
        author: Author bytes in "Name <email>" format.
        author_time: Unix timestamp.
        author_tz: Timezone offset in seconds east of UTC, as dulwich parses it.

    Returns:
        Tuple of (name, email, timezone-aware datetime).
    """
    author_str = author.decode("utf-8", errors="replace")
    if "<" in author_str and author_str.endswith(">"):
        name_part, email_part = author_str.rsplit("<", 1)
        name = name_part.strip()
        email = email_part.rstrip(">")
    else:
        name = author_str.strip()
        email = ""

    tz = timezone(timedelta(seconds=author_tz))
    return name, email, datetime.fromtimestamp(author_time, tz=tz)


def to_commit(raw: RawCommit) -> Commit:
    """Translate a raw commit object."""
    name, email, timestamp = parse_author_line(
        raw.author, raw.author_time, raw.author_timezone
    )
    return Commit(
        sha=raw.sha.decode("ascii"),
        message=raw.message.decode("utf-8", errors="replace"),
        author_name=name,
        author_email=email,
        timestamp=timestamp,
        parent_shas=tuple(parent.decode("ascii") for parent in raw.parents),
        files_changed=raw.files_changed,
    )
