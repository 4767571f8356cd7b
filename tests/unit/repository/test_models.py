"""Unit tests for repository models."""

from datetime import UTC, datetime

import pytest

from nanogit.repository import (
    ChangeKind,
    Commit,
    DiffHunk,
    DiffScope,
    FileStatus,
    Status,
)


class TestStatus:
    def test_frozen_dataclass_is_immutable(self) -> None:
        status = Status()
        with pytest.raises(AttributeError):
            status.untracked = ("a.txt",)  # pyright: ignore[reportAttributeAccessIssue]

    def test_path_helpers(self) -> None:
        status = Status(
            staged=(FileStatus(path="a.txt", change=ChangeKind.ADDED),),
            unstaged=(FileStatus(path="b.txt", change=ChangeKind.MODIFIED),),
        )

        assert status.staged_paths() == ("a.txt",)
        assert status.unstaged_paths() == ("b.txt",)
        assert status.has_staged_changes
        assert not status.is_clean

    def test_untracked_only_is_not_clean(self) -> None:
        status = Status(untracked=("new.txt",))

        assert not status.is_clean
        assert not status.has_staged_changes


class TestDiffScope:
    @pytest.mark.parametrize(
        ("paths", "path", "expected"),
        [
            ((), "anything.txt", True),
            (("src",), "src/app.py", True),
            (("src/",), "src/app.py", True),
            (("src",), "src", True),
            (("src",), "srcfile.py", False),
            (("docs", "README.md"), "README.md", True),
            (("docs",), "README.md", False),
            ((".",), "src/app.py", True),
            (("docs", "."), "README.md", True),
        ],
    )
    def test_matches(
        self, paths: tuple[str, ...], path: str, expected: bool  # noqa: FBT001
    ) -> None:
        assert DiffScope(paths=paths).matches(path) is expected

    def test_is_hashable(self) -> None:
        assert hash(DiffScope(paths=("a",))) == hash(DiffScope(paths=("a",)))


class TestDiffHunk:
    def test_header_with_counts(self) -> None:
        hunk = DiffHunk(old_start=3, old_count=4, new_start=3, new_count=5, lines=())
        assert hunk.header == "@@ -3,4 +3,5 @@"

    def test_header_omits_count_of_one(self) -> None:
        hunk = DiffHunk(old_start=7, old_count=1, new_start=7, new_count=1, lines=())
        assert hunk.header == "@@ -7 +7 @@"


class TestCommit:
    def _commit(self, message: str) -> Commit:
        return Commit(
            sha="a" * 40,
            message=message,
            author_name="Jane",
            author_email="jane@example.com",
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
        )

    def test_summary_is_first_line(self) -> None:
        assert self._commit("Subject\n\nBody").summary == "Subject"

    def test_summary_of_empty_message(self) -> None:
        assert self._commit("").summary == ""
