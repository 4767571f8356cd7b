from pathlib import Path

import platformdirs


def get_nanogit_log_dir() -> Path:
    """Get the per-user log directory."""
    return platformdirs.user_log_path("nanogit")


def get_nanogit_cli_log_file() -> Path:
    """Get the path to the CLI log file inside the user log directory."""
    return get_nanogit_log_dir() / "cli.log"
