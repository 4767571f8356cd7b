"""Integration tests for DulwichEngine against real git repositories."""

from pathlib import Path

import pytest

from nanogit.exceptions import NotARepositoryError
from nanogit.repository import (
    DiffScope,
    DiffTarget,
    DulwichEngine,
    LogRange,
    discover_root,
)

from tests.integration.conftest import run_git


@pytest.fixture
def engine(git_repo: Path) -> DulwichEngine:
    return DulwichEngine(git_repo)


class TestOpen:
    def test_rejects_plain_directory(self, tmp_path: Path) -> None:
        with pytest.raises(NotARepositoryError):
            _ = DulwichEngine(tmp_path)

    def test_discover_walks_upward(self, git_repo: Path) -> None:
        assert discover_root(git_repo / "src") == git_repo

        with DulwichEngine.discover(git_repo / "src") as engine:
            assert engine.root == git_repo

    def test_discover_outside_repository(self, tmp_path: Path) -> None:
        with pytest.raises(NotARepositoryError):
            _ = discover_root(tmp_path)

    def test_rejects_bare_repository(self, tmp_path: Path) -> None:
        bare = tmp_path / "bare.git"
        bare.mkdir()
        _ = run_git(bare, "init", "--bare")

        with pytest.raises(NotARepositoryError, match="Bare"):
            _ = DulwichEngine(bare)

    def test_queries_after_close_fail(self, git_repo: Path) -> None:
        engine = DulwichEngine(git_repo)
        _ = engine.read_status()
        engine.close()

        with pytest.raises(RuntimeError, match="closed"):
            _ = engine.read_status()


class TestReadStatus:
    def test_clean_repository(self, engine: DulwichEngine) -> None:
        raw = engine.read_status()

        assert raw.staged == ()
        assert raw.unstaged == ()
        assert raw.untracked == ()

    def test_reports_each_category(
        self, engine: DulwichEngine, git_repo: Path
    ) -> None:
        _ = (git_repo / "README.md").write_text("# Changed project\n")
        _ = (git_repo / "new.txt").write_text("new\n")
        (git_repo / "src" / "app.py").unlink()
        _ = (git_repo / "staged.txt").write_text("staged\n")
        _ = run_git(git_repo, "add", "staged.txt")

        raw = engine.read_status()

        assert [change.new_path for change in raw.staged] == [b"staged.txt"]
        assert raw.unstaged == (b"README.md", b"src/app.py")
        assert raw.missing == frozenset({b"src/app.py"})
        assert raw.untracked == (b"new.txt",)

    def test_detects_staged_rename(
        self, engine: DulwichEngine, git_repo: Path
    ) -> None:
        _ = run_git(git_repo, "mv", "src/app.py", "src/main.py")

        raw = engine.read_status()

        assert len(raw.staged) == 1
        change = raw.staged[0]
        assert change.type == "rename"
        assert change.old_path == b"src/app.py"
        assert change.new_path == b"src/main.py"


class TestReadState:
    def test_external_edit_changes_worktree_signal(
        self, engine: DulwichEngine, git_repo: Path
    ) -> None:
        before = engine.read_state()
        _ = (git_repo / "README.md").write_text("# A much longer heading\n")

        after = engine.read_state()

        assert after.worktree != before.worktree
        assert after.head_sha == before.head_sha

    def test_ignored_directories_are_not_scanned(
        self, engine: DulwichEngine, git_repo: Path
    ) -> None:
        _ = (git_repo / ".gitignore").write_text("node_modules/\n")
        (git_repo / "node_modules" / "pkg").mkdir(parents=True)
        _ = (git_repo / "node_modules" / "pkg" / "index.js").write_text("x\n")

        before = engine.read_state()
        _ = (git_repo / "node_modules" / "pkg" / "other.js").write_text("y\n")
        after = engine.read_state()

        scanned = {entry[0] for entry in before.worktree}
        assert b"src/" in scanned
        assert not any(path.startswith(b"node_modules") for path in scanned)
        assert after.worktree == before.worktree

    def test_scan_can_be_skipped(self, engine: DulwichEngine) -> None:
        assert engine.read_state(scan_worktree=False).worktree == ()

    def test_unborn_head(self, empty_git_repo: Path) -> None:
        with DulwichEngine(empty_git_repo) as engine:
            state = engine.read_state()

        assert state.head_sha is None
        assert state.head_ref == b"refs/heads/main"


class TestComputeDiff:
    def test_each_target(self, engine: DulwichEngine, git_repo: Path) -> None:
        _ = (git_repo / "README.md").write_text("# Staged\n")
        _ = run_git(git_repo, "add", "README.md")
        _ = (git_repo / "README.md").write_text("# Worktree\n")

        staged = engine.compute_diff(DiffScope(target=DiffTarget.STAGED))
        unstaged = engine.compute_diff(DiffScope(target=DiffTarget.UNSTAGED))
        head = engine.compute_diff(DiffScope(target=DiffTarget.HEAD))

        assert staged[0].old_content == b"# Project\n"
        assert staged[0].new_content == b"# Staged\n"
        assert unstaged[0].old_content == b"# Staged\n"
        assert unstaged[0].new_content == b"# Worktree\n"
        assert head[0].old_content == b"# Project\n"
        assert head[0].new_content == b"# Worktree\n"

    def test_scope_limits_paths(self, engine: DulwichEngine, git_repo: Path) -> None:
        _ = (git_repo / "README.md").write_text("# Changed\n")
        _ = (git_repo / "src" / "app.py").write_text("print('bye')\n")

        diffs = engine.compute_diff(DiffScope(paths=("src",)))

        assert [diff.change.new_path for diff in diffs] == [b"src/app.py"]


class TestRefsAndLog:
    def test_list_refs(self, engine: DulwichEngine, git_repo: Path) -> None:
        _ = run_git(git_repo, "branch", "feature")

        refs = engine.list_refs()

        assert refs.head_ref == b"refs/heads/main"
        names = [name for name, _ in refs.refs]
        assert names == [b"refs/heads/feature", b"refs/heads/main"]

    def test_log_ranges(self, engine: DulwichEngine, git_repo: Path) -> None:
        _ = run_git(git_repo, "checkout", "-b", "feature")
        _ = (git_repo / "feature.txt").write_text("feature\n")
        _ = run_git(git_repo, "add", "feature.txt")
        _ = run_git(git_repo, "commit", "-m", "Add feature")

        full = engine.read_log(LogRange(include=("feature",)))
        only_feature = engine.read_log(
            LogRange(include=("feature",), exclude=("main",))
        )

        assert len(full) == 2
        assert len(only_feature) == 1
        assert engine.read_commit(only_feature[0]).message == b"Add feature\n"

    def test_abbreviated_sha(self, engine: DulwichEngine, git_repo: Path) -> None:
        head = run_git(git_repo, "rev-parse", "HEAD").strip()

        shas = engine.read_log(LogRange(include=(head[:7],)))

        assert shas == (head.encode(),)

    def test_unknown_revision(self, engine: DulwichEngine) -> None:
        with pytest.raises(ValueError, match="Unknown revision"):
            _ = engine.read_log(LogRange(include=("nope-not-here",)))

    def test_root_path_filter_is_unrestricted(self, engine: DulwichEngine) -> None:
        assert engine.read_log(LogRange(paths=(".",))) == engine.read_log(LogRange())

    def test_unborn_head_log_is_empty(self, empty_git_repo: Path) -> None:
        with DulwichEngine(empty_git_repo) as engine:
            assert engine.read_log(LogRange()) == ()

    def test_read_commit_counts_files(self, engine: DulwichEngine) -> None:
        (sha,) = engine.read_log(LogRange())

        commit = engine.read_commit(sha)

        assert commit.files_changed == 2
        assert commit.parents == ()
        assert commit.author == b"Test User <test@example.com>"


class TestMutations:
    def test_stage_and_commit(self, engine: DulwichEngine, git_repo: Path) -> None:
        _ = (git_repo / "new.txt").write_text("new\n")

        engine.apply_stage(["new.txt"])
        sha = engine.create_commit(b"Add new", b"Jane <jane@example.com>")

        assert sha is not None
        assert run_git(git_repo, "rev-parse", "HEAD").strip() == sha.decode()
        assert run_git(git_repo, "status", "--porcelain") == ""

    def test_stage_removes_deleted_file(
        self, engine: DulwichEngine, git_repo: Path
    ) -> None:
        (git_repo / "README.md").unlink()

        engine.apply_stage(["README.md"])

        assert run_git(git_repo, "status", "--porcelain").strip() == "D  README.md"

    def test_unstage_restores_head_entry(
        self, engine: DulwichEngine, git_repo: Path
    ) -> None:
        _ = (git_repo / "README.md").write_text("# Changed\n")
        _ = (git_repo / "extra.txt").write_text("extra\n")
        _ = run_git(git_repo, "add", "README.md", "extra.txt")

        engine.apply_unstage(["README.md", "extra.txt"])

        raw = engine.read_status()
        assert raw.staged == ()
        assert raw.unstaged == (b"README.md",)
        assert raw.untracked == (b"extra.txt",)

    def test_commit_without_changes(self, engine: DulwichEngine) -> None:
        assert engine.create_commit(b"Nothing", b"Jane <jane@example.com>") is None

    def test_initial_commit(self, empty_git_repo: Path) -> None:
        _ = (empty_git_repo / "first.txt").write_text("first\n")

        with DulwichEngine(empty_git_repo) as engine:
            assert engine.create_commit(b"Empty", b"J <j@example.com>") is None
            engine.apply_stage(["first.txt"])
            sha = engine.create_commit(b"First", b"J <j@example.com>")

        assert sha is not None
