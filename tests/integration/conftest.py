import subprocess
from pathlib import Path

import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


def run_git(cwd: Path, *args: str) -> str:
    """Run a git command in the given directory and return its stdout."""
    result = subprocess.run(  # noqa: S603 - Safe: controlled git args
        ["git", *args],  # noqa: S607
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        msg = f"git {' '.join(args)} failed: {result.stderr}"
        raise RuntimeError(msg)
    return result.stdout


def init_git_repo(path: Path) -> None:
    """Initialize a git repository with a fixed identity and no signing."""
    _ = run_git(path, "init", "--initial-branch=main")
    _ = run_git(path, "config", "user.name", "Test User")
    _ = run_git(path, "config", "user.email", "test@example.com")
    _ = run_git(path, "config", "commit.gpgsign", "false")


@pytest.fixture
def empty_git_repo(tmp_path: Path) -> Path:
    """Create a git repository without commits."""
    root = tmp_path / "repo"
    root.mkdir()
    init_git_repo(root)
    return root.resolve()


@pytest.fixture
def git_repo(empty_git_repo: Path) -> Path:
    """Create a git repository with one commit on main.

    Structure:
        README.md     # "# Project\\n"
        src/app.py    # "print('hello')\\n"
    """
    root = empty_git_repo
    _ = (root / "README.md").write_text("# Project\n")
    (root / "src").mkdir()
    _ = (root / "src" / "app.py").write_text("print('hello')\n")
    _ = run_git(root, "add", "README.md", "src/app.py")
    _ = run_git(root, "commit", "-m", "Initial commit")
    return root
