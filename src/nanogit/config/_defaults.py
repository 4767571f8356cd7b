"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
    "cache": {
        "max_entries": 256,
        "max_commits": 4096,
        "scan_worktree": True,
        "diff_context": 3,
    },
}
