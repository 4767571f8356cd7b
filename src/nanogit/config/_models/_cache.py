"""Cache configuration model."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


def _bound(value: int) -> int | None:
    return value or None


class CacheConfig(BaseModel):
    """Cache configuration section.

    Attributes:
        max_entries: Maximum number of cached query results. 0 means
            unbounded.
        max_commits: Maximum number of cached commit details. 0 means
            unbounded.
        scan_worktree: Include working-tree stat data in fingerprints, so
            edits made by other tools invalidate cached results.
        diff_context: Default number of context lines in diffs.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    max_entries: int = Field(default=256, ge=0)
    max_commits: int = Field(default=4096, ge=0)
    scan_worktree: bool = True
    diff_context: int = Field(default=3, ge=0)

    @property
    def query_bound(self) -> int | None:
        """Bound for the query store, None when unbounded."""
        return _bound(self.max_entries)

    @property
    def commit_bound(self) -> int | None:
        """Bound for the commit store, None when unbounded."""
        return _bound(self.max_commits)
