from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from nanogit.cli import create_app


@pytest.fixture
def nanogit_cli(
    console: Console, git_repo: Path, monkeypatch: pytest.MonkeyPatch
) -> Callable[..., int]:
    """Create a CLI runner working inside git_repo.

    Returns a callable that runs the CLI and returns its exit code
    (0 if no SystemExit). Command output goes to stdout and stderr.
    """
    monkeypatch.chdir(git_repo)
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 0 if e.code is None else 1
        else:
            return 0

    return _run
