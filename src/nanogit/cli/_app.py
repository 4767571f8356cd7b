"""The command-line interface for nanogit."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from nanogit.config import safe_load_config
from nanogit.exceptions import NotARepositoryError
from nanogit.repository import discover_root
from nanogit.utils._logging import create_cli_logger

from ._commands import register_commands
from ._commands._context import CLIContext
from ._commands._shared import ExitCode, exit_with_error

_HELP = "Cached, simplified access to a git repository."


def _resolve_repo_root(repo: Path | None) -> Path | None:
    """Find the repository root for the --repo flag or the current directory.

    An explicit --repo must be inside a repository. Without it, commands
    that need no repository (such as config) still run outside one.
    """
    try:
        return discover_root(repo if repo is not None else Path.cwd())
    except NotARepositoryError as e:
        if repo is not None:
            exit_with_error(str(e), ExitCode.NOT_A_REPOSITORY)
        return None


def _command_name(tokens: tuple[str, ...]) -> str:
    return next((token for token in tokens if not token.startswith("-")), "")


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="nanogit",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[
            bool, Parameter(name=["--verbose", "-v"], help="Enable verbose output")
        ] = False,
        repo: Annotated[
            Path | None,
            Parameter(name="--repo", help="Path inside the repository to operate on"),
        ] = None,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
    ) -> None:
        """Launch nanogit with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Enable verbose output and debug logging.
            repo: Path inside the repository (defaults to the current directory).
            config: Explicit path to config file.
        """
        repo_root = _resolve_repo_root(repo)

        # Verbose output also raises the log level
        cli_overrides: dict[str, object] | None = None
        if verbose:
            cli_overrides = {"logging": {"level": "debug"}}

        loaded_config, config_error = safe_load_config(
            config_path=config,
            repo_root=repo_root,
            cli_overrides=cli_overrides,
        )

        cli_logger = create_cli_logger(
            level=loaded_config.logging.level.value,
            log_format=loaded_config.logging.format.value,  # type: ignore[arg-type]
            log_file=loaded_config.logging.file,
            command=_command_name(tokens),
        )

        ctx = CLIContext(
            config=loaded_config,
            verbose=verbose,
            repo_root=repo_root,
            config_error=config_error,
            logger=cli_logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


app = create_app()


def main() -> None:
    """Default entrypoint for the `nanogit` CLI."""
    create_app().meta()


if __name__ == "__main__":
    main()
