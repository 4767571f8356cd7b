"""Unit tests for translating raw engine results into the simplified model."""

from datetime import timedelta

from nanogit.repository import Branch, ChangeKind, DiffEntry, FileStatus, format_patch
from nanogit.repository._raw import (
    RawChange,
    RawCommit,
    RawFileDiff,
    RawRefs,
    RawStatus,
)
from nanogit.repository._translate import (
    build_hunks,
    parse_author_line,
    to_branches,
    to_commit,
    to_diff,
    to_diff_entry,
    to_status,
)

SHA_A = b"a" * 40
SHA_B = b"b" * 40


class TestToStatus:
    def test_classifies_and_sorts(self) -> None:
        raw = RawStatus(
            staged=(
                RawChange(type="modify", old_path=b"z.txt", new_path=b"z.txt"),
                RawChange(type="add", old_path=None, new_path=b"a.txt"),
                RawChange(type="delete", old_path=b"gone.txt", new_path=None),
                RawChange(type="rename", old_path=b"old.txt", new_path=b"new.txt"),
            ),
            unstaged=(b"b.txt", b"a.txt"),
            missing=frozenset({b"b.txt"}),
            untracked=(b"y.txt", b"x.txt"),
        )

        status = to_status(raw)

        assert status.staged == (
            FileStatus(path="a.txt", change=ChangeKind.ADDED),
            FileStatus(path="gone.txt", change=ChangeKind.DELETED),
            FileStatus(path="new.txt", change=ChangeKind.RENAMED, old_path="old.txt"),
            FileStatus(path="z.txt", change=ChangeKind.MODIFIED),
        )
        assert status.unstaged == (
            FileStatus(path="a.txt", change=ChangeKind.MODIFIED),
            FileStatus(path="b.txt", change=ChangeKind.DELETED),
        )
        assert status.untracked == ("x.txt", "y.txt")

    def test_empty_status_is_clean(self) -> None:
        status = to_status(RawStatus())

        assert status.is_clean
        assert not status.has_staged_changes

    def test_undecodable_paths_are_replaced(self) -> None:
        status = to_status(RawStatus(untracked=(b"caf\xe9.txt",)))

        assert status.untracked == ("caf\ufffd.txt",)


class TestBuildHunks:
    def test_single_replacement(self) -> None:
        hunks = build_hunks(["a", "b", "c"], ["a", "B", "c"])

        assert len(hunks) == 1
        hunk = hunks[0]
        assert hunk.header == "@@ -1,3 +1,3 @@"
        assert hunk.lines == (" a", "-b", "+B", " c")

    def test_added_file_starts_at_zero(self) -> None:
        hunks = build_hunks([], ["x", "y"])

        assert hunks[0].header == "@@ -0,0 +1,2 @@"
        assert hunks[0].lines == ("+x", "+y")

    def test_single_line_range_omits_count(self) -> None:
        hunks = build_hunks(["old"], ["new"])

        assert hunks[0].header == "@@ -1 +1 @@"

    def test_distant_changes_form_separate_hunks(self) -> None:
        old = [f"line {i}" for i in range(20)]
        new = list(old)
        new[1] = "changed 1"
        new[18] = "changed 18"

        hunks = build_hunks(old, new, context_lines=2)

        assert len(hunks) == 2
        assert hunks[0].old_start == 1
        assert hunks[1].old_start == 17

    def test_context_lines_limit_surroundings(self) -> None:
        old = [str(i) for i in range(10)]
        new = list(old)
        new[5] = "five"

        hunks = build_hunks(old, new, context_lines=0)

        assert hunks[0].lines == ("-5", "+five")
        assert hunks[0].header == "@@ -6 +6 @@"

    def test_equal_input_has_no_hunks(self) -> None:
        assert build_hunks(["same"], ["same"]) == ()


class TestToDiff:
    def test_counts_additions_and_deletions(self) -> None:
        raw = RawFileDiff(
            change=RawChange(type="modify", old_path=b"f.txt", new_path=b"f.txt"),
            old_content=b"a\nb\nc\n",
            new_content=b"a\nB\nc\nd\n",
        )

        entry = to_diff_entry(raw)

        assert entry.additions == 2
        assert entry.deletions == 1
        assert not entry.is_binary

    def test_binary_content_has_no_hunks(self) -> None:
        raw = RawFileDiff(
            change=RawChange(type="add", old_path=None, new_path=b"img.png"),
            new_content=b"\x89PNG\x00\x01",
        )

        entry = to_diff_entry(raw)

        assert entry.is_binary
        assert entry.hunks == ()
        assert entry.change is ChangeKind.ADDED

    def test_drops_unchanged_files_and_sorts(self) -> None:
        unchanged = RawFileDiff(
            change=RawChange(type="modify", old_path=b"same.txt", new_path=b"same.txt"),
            old_content=b"x\n",
            new_content=b"x\n",
        )
        added = RawFileDiff(
            change=RawChange(type="add", old_path=None, new_path=b"b.txt"),
            new_content=b"new\n",
        )
        deleted = RawFileDiff(
            change=RawChange(type="delete", old_path=b"a.txt", new_path=None),
            old_content=b"old\n",
        )

        entries = to_diff([unchanged, added, deleted])

        assert [entry.path for entry in entries] == ["a.txt", "b.txt"]
        assert entries[0].change is ChangeKind.DELETED

    def test_empty_added_file_is_kept(self) -> None:
        raw = RawFileDiff(
            change=RawChange(type="add", old_path=None, new_path=b"empty.txt"),
        )

        entries = to_diff([raw])

        assert len(entries) == 1
        assert entries[0].hunks == ()


class TestFormatPatch:
    def test_modified_file(self) -> None:
        entry = to_diff_entry(
            RawFileDiff(
                change=RawChange(type="modify", old_path=b"f.txt", new_path=b"f.txt"),
                old_content=b"a\nb\nc\n",
                new_content=b"a\nB\nc\n",
            )
        )

        assert format_patch([entry]) == (
            "diff --git a/f.txt b/f.txt\n"
            "--- a/f.txt\n"
            "+++ b/f.txt\n"
            "@@ -1,3 +1,3 @@\n"
            " a\n"
            "-b\n"
            "+B\n"
            " c\n"
        )

    def test_added_and_deleted_files_use_dev_null(self) -> None:
        added = to_diff_entry(
            RawFileDiff(
                change=RawChange(type="add", old_path=None, new_path=b"new.txt"),
                new_content=b"hi\n",
            )
        )
        deleted = to_diff_entry(
            RawFileDiff(
                change=RawChange(type="delete", old_path=b"old.txt", new_path=None),
                old_content=b"bye\n",
            )
        )

        patch = format_patch([added, deleted])

        assert "new file mode 100644\n--- /dev/null\n+++ b/new.txt\n" in patch
        assert "deleted file mode 100644\n--- a/old.txt\n+++ /dev/null\n" in patch

    def test_rename_and_binary(self) -> None:
        entry = DiffEntry(
            path="new.bin",
            change=ChangeKind.RENAMED,
            old_path="old.bin",
            is_binary=True,
        )

        assert format_patch([entry]) == (
            "diff --git a/old.bin b/new.bin\n"
            "rename from old.bin\n"
            "rename to new.bin\n"
            "Binary files a/old.bin and b/new.bin differ\n"
        )

    def test_no_entries(self) -> None:
        assert format_patch([]) == ""


class TestToBranches:
    def test_local_before_remote_and_head_marked(self) -> None:
        raw = RawRefs(
            head_ref=b"refs/heads/main",
            head_sha=SHA_A,
            refs=(
                (b"refs/heads/main", SHA_A),
                (b"refs/heads/feature", SHA_B),
                (b"refs/remotes/origin/HEAD", SHA_A),
                (b"refs/remotes/origin/main", SHA_A),
                (b"refs/tags/v1", SHA_B),
            ),
        )

        branches = to_branches(raw)

        assert branches == (
            Branch(name="feature", target="b" * 40),
            Branch(name="main", target="a" * 40, is_head=True),
            Branch(name="origin/main", target="a" * 40, is_remote=True),
        )

    def test_detached_head_marks_nothing(self) -> None:
        raw = RawRefs(
            head_ref=None, head_sha=SHA_A, refs=((b"refs/heads/main", SHA_A),)
        )

        assert not any(branch.is_head for branch in to_branches(raw))


class TestCommits:
    def test_parse_author_line(self) -> None:
        name, email, timestamp = parse_author_line(
            b"Jane Doe <jane@example.com>", 1_700_000_000, 3600
        )

        assert name == "Jane Doe"
        assert email == "jane@example.com"
        assert timestamp.utcoffset() == timedelta(hours=1)
        assert timestamp.timestamp() == 1_700_000_000

    def test_parse_author_line_without_email(self) -> None:
        name, email, _ = parse_author_line(b"robot", 0, 0)

        assert name == "robot"
        assert email == ""

    def test_to_commit(self) -> None:
        raw = RawCommit(
            sha=SHA_B,
            author=b"Jane Doe <jane@example.com>",
            author_time=1_700_000_000,
            author_timezone=-7200,
            message=b"Fix parser\n\nLonger description.\n",
            parents=(SHA_A,),
            files_changed=2,
        )

        commit = to_commit(raw)

        assert commit.sha == "b" * 40
        assert commit.summary == "Fix parser"
        assert commit.parent_shas == ("a" * 40,)
        assert commit.files_changed == 2
        assert commit.timestamp.utcoffset() == timedelta(hours=-2)
