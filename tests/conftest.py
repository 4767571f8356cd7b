"""Shared test fixtures for nanogit tests."""

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from rich.console import Console

from nanogit.repository import CachedRepository


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep tests away from the user's config, logs and git identity.

    Structure:
        <tmp>/home/
            config.toml      # user config path (absent unless a test writes it)
            nanogit.log      # CLI log file
    """
    for key in list(os.environ):
        if key.startswith("NANOGIT_"):
            monkeypatch.delenv(key)

    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(
        "nanogit.config._discovery.get_user_config_path",
        lambda: home / "config.toml",
    )
    monkeypatch.setenv("NANOGIT_LOGGING__FILE", str(home / "nanogit.log"))
    monkeypatch.setenv("NANOGIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("NANOGIT_AUTHOR_EMAIL", "test@example.com")

    yield

    CachedRepository._reset_registry()  # pyright: ignore[reportPrivateUsage]


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def user_config_path() -> Path:
    """Return the isolated user config path."""
    from nanogit.config._discovery import get_user_config_path  # noqa: PLC0415

    return get_user_config_path()
