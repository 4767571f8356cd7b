"""Author information resolution utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from dulwich.config import StackedConfig
from dulwich.errors import NotGitRepository
from dulwich.repo import Repo

if TYPE_CHECKING:
    from pathlib import Path

    from dulwich.config import Config

# Default identity when neither environment nor git config provide one
DEFAULT_NAME: Final = "nanogit"
DEFAULT_EMAIL: Final = "nanogit@localhost"


@dataclass(slots=True, frozen=True)
class AuthorInfo:
    """Resolved author information.

    Attributes:
        name: Author name, or None if not found.
        email: Author email, or None if not found.
    """

    name: str | None
    email: str | None

    def to_identity(self) -> bytes:
        """Format as a "Name <email>" identity, filling in defaults."""
        return f"{self.name or DEFAULT_NAME} <{self.email or DEFAULT_EMAIL}>".encode()


def _config_stack(repo_root: Path | None) -> Config:
    if repo_root is not None:
        try:
            with Repo(str(repo_root)) as repo:
                return repo.get_config_stack()
        except NotGitRepository:
            pass
    return StackedConfig.default()


def _config_value(config: Config, key: bytes) -> str | None:
    try:
        value = config.get((b"user",), key)
    except KeyError:
        return None
    return value.decode("utf-8", errors="replace") or None


def get_author_info(repo_root: Path | None = None) -> AuthorInfo:
    """Resolve author info from environment variables or git config.

    Resolution order:
    1. Environment variables (NANOGIT_AUTHOR_NAME, NANOGIT_AUTHOR_EMAIL)
    2. Git config stack of the repository (repository, user and system
       files), or the user and system files when repo_root is None

    Args:
        repo_root: Repository whose config is consulted.

    Returns:
        AuthorInfo with resolved name and email (either may be None).
    """
    name = os.environ.get("NANOGIT_AUTHOR_NAME")
    email = os.environ.get("NANOGIT_AUTHOR_EMAIL")
    if name and email:
        return AuthorInfo(name=name, email=email)

    config = _config_stack(repo_root)
    return AuthorInfo(
        name=name or _config_value(config, b"name"),
        email=email or _config_value(config, b"email"),
    )
