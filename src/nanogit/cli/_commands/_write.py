# pyright: reportUnusedCallResult=false
# ruff: noqa: D415
"""Repository mutation commands: stage, unstage and commit."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.console import Console
from rich.markup import escape

from ._context import CLIContext
from ._shared import open_repository


def _print_paths(console: Console, paths: tuple[str, ...], verb: str) -> None:
    if not paths:
        console.print(f"[dim]Nothing to {verb.lower()}[/dim]")
        return
    console.print(f"[green]{verb}d {len(paths)} path(s)[/green]")
    if CLIContext.get_current().verbose:
        for path in paths:
            console.print(f"  [dim]{escape(path)}[/dim]", highlight=False)


def stage(
    paths: Annotated[
        tuple[str, ...],
        Parameter(help="Files or directories to stage ('.' stages everything)"),
    ],
) -> None:
    """Record working tree content in the index"""
    console = Console()

    with open_repository() as repo:
        staged = repo.stage(Path(path).resolve() for path in paths)

    _print_paths(console, staged, "Stage")


def unstage(
    paths: Annotated[
        tuple[str, ...],
        Parameter(help="Files or directories to unstage ('.' unstages everything)"),
    ],
) -> None:
    """Reset index entries to their HEAD state"""
    console = Console()

    with open_repository() as repo:
        unstaged = repo.unstage(Path(path).resolve() for path in paths)

    _print_paths(console, unstaged, "Unstage")


def commit(
    message: Annotated[
        str,
        Parameter(name=["--message", "-m"], help="Commit message"),
    ],
) -> None:
    """Commit the staged changes"""
    console = Console()

    with open_repository() as repo:
        result = repo.commit(message)

    if result.no_changes:
        console.print("[dim]Nothing to commit[/dim]")
        return

    console.print(f"[green]Committed {result.sha}[/green]")
