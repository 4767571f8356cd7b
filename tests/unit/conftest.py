from pathlib import Path

import pytest

from nanogit.repository import CachedRepository, FakeEngine


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def engine() -> FakeEngine:
    """Create a FakeEngine with one commit on main.

    Structure:
        README.md   # committed, staged and in the working tree
        src/app.py  # committed, staged and in the working tree
    """
    engine = FakeEngine()
    engine.write("README.md", b"# Project\n")
    engine.write("src/app.py", b"print('hello')\n")
    engine.apply_stage(["README.md", "src"])
    _ = engine.create_commit(b"Initial commit", b"Test User <test@example.com>")
    engine.calls.clear()
    return engine


@pytest.fixture
def repo(engine: FakeEngine) -> CachedRepository:
    """Create a CachedRepository over the fake engine."""
    return CachedRepository(engine)
