# pyright: reportUnusedCallResult=false
# ruff: noqa: D415, FBT002
"""Read-only repository commands: status, diff, branches and log."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from nanogit.repository import (
    ChangeKind,
    DiffScope,
    DiffTarget,
    LogRange,
    format_patch,
)

from ._context import CLIContext
from ._shared import ExitCode, exit_with_error, open_repository

_CHANGE_MARKERS: dict[ChangeKind, str] = {
    ChangeKind.ADDED: "+",
    ChangeKind.MODIFIED: "~",
    ChangeKind.DELETED: "-",
    ChangeKind.RENAMED: ">",
}

_PATCH_STYLES: tuple[tuple[str, str], ...] = (
    ("diff --git", "bold"),
    ("+++", "bold"),
    ("---", "bold"),
    ("@@", "cyan"),
    ("+", "green"),
    ("-", "red"),
)


def _absolute(paths: tuple[str, ...]) -> list[Path]:
    """Resolve command-line paths against the current directory."""
    return [Path(path).resolve() for path in paths]


def _parse_revisions(revisions: tuple[str, ...]) -> tuple[list[str], list[str]]:
    """Split revisions into included and excluded lists.

    Accepts ``A..B`` (history of B not reachable from A) and ``^A``.
    """
    include: list[str] = []
    exclude: list[str] = []
    for revision in revisions:
        if ".." in revision:
            base, _, tip = revision.partition("..")
            exclude.append(base or "HEAD")
            include.append(tip or "HEAD")
        elif revision.startswith("^"):
            exclude.append(revision[1:])
        else:
            include.append(revision)
    return include, exclude


def status() -> None:
    """Show staged, unstaged and untracked changes"""
    console = Console()
    ctx = CLIContext.get_current()

    with open_repository() as repo:
        result = repo.status()

    if result.is_clean:
        console.print("[dim]Nothing to commit, working tree clean[/dim]")
        return

    if result.staged:
        console.print("[bold green]Staged changes:[/bold green]")
        for entry in result.staged:
            label = (
                f"{entry.old_path} -> {entry.path}" if entry.old_path else entry.path
            )
            marker = _CHANGE_MARKERS[entry.change]
            console.print(
                f"  [green]{marker} {escape(label)}[/green]", highlight=False
            )

    if result.unstaged:
        console.print("[bold yellow]Unstaged changes:[/bold yellow]")
        for entry in result.unstaged:
            marker = _CHANGE_MARKERS[entry.change]
            console.print(
                f"  [yellow]{marker} {escape(entry.path)}[/yellow]", highlight=False
            )

    if result.untracked:
        console.print("[bold cyan]Untracked files:[/bold cyan]")
        for path in result.untracked:
            console.print(f"  [cyan]? {escape(path)}[/cyan]", highlight=False)

    if ctx.verbose:
        total = len(result.staged) + len(result.unstaged) + len(result.untracked)
        console.print(f"\n[dim]{total} path(s) with changes[/dim]")


def diff(
    paths: Annotated[
        tuple[str, ...],
        Parameter(help="Limit the diff to these files or directories"),
    ] = (),
    staged: Annotated[
        bool,
        Parameter(name=["--staged", "--cached"], help="Compare HEAD with the index"),
    ] = False,
    head: Annotated[
        bool,
        Parameter(name=["--head"], help="Compare HEAD with the working tree"),
    ] = False,
    unified: Annotated[
        int | None,
        Parameter(
            name=["--unified", "-U"],
            help="Number of context lines (defaults to cache.diff_context)",
        ),
    ] = None,
) -> None:
    """Show changes as a unified diff

    Without options, compares the index with the working tree.
    """
    console = Console()
    ctx = CLIContext.get_current()

    if staged and head:
        exit_with_error("--staged and --head cannot be combined", ExitCode.USAGE_ERROR)
    if unified is not None and unified < 0:
        exit_with_error("--unified must not be negative", ExitCode.USAGE_ERROR)

    target = DiffTarget.UNSTAGED
    if staged:
        target = DiffTarget.STAGED
    elif head:
        target = DiffTarget.HEAD

    with open_repository() as repo:
        scope = DiffScope(
            paths=tuple(str(path) for path in _absolute(paths)),
            target=target,
            context_lines=(
                unified if unified is not None else ctx.config.cache.diff_context
            ),
        )
        entries = repo.diff(scope)

    for line in format_patch(entries).splitlines():
        style = next(
            (style for prefix, style in _PATCH_STYLES if line.startswith(prefix)),
            "",
        )
        console.print(Text(line, style=style))

    if ctx.verbose and entries:
        additions = sum(entry.additions for entry in entries)
        deletions = sum(entry.deletions for entry in entries)
        console.print(
            f"\n[dim]{len(entries)} file(s) changed, "
            f"{additions} insertion(s), {deletions} deletion(s)[/dim]"
        )


def branches() -> None:
    """List local and remote-tracking branches"""
    console = Console()

    with open_repository() as repo:
        result = repo.branches()

    if not result:
        console.print("[dim]No branches yet[/dim]")
        return

    for branch in result:
        marker = "*" if branch.is_head else " "
        if branch.is_remote:
            name = f"[red]remotes/{escape(branch.name)}[/red]"
        elif branch.is_head:
            name = f"[green]{escape(branch.name)}[/green]"
        else:
            name = escape(branch.name)
        console.print(
            f"{marker} {name} [yellow]{branch.target[:8]}[/yellow]", highlight=False
        )


def log(
    revisions: Annotated[
        tuple[str, ...],
        Parameter(help="Revisions to list (A..B and ^A exclude history)"),
    ] = (),
    n: Annotated[
        int,
        Parameter(name=["--number", "-n"], help="Number of commits to show"),
    ] = 10,
    path: Annotated[
        tuple[str, ...],
        Parameter(name=["--path"], help="Only commits touching these paths"),
    ] = (),
) -> None:
    """Show commit history, newest first"""
    console = Console()
    ctx = CLIContext.get_current()

    if n < 1:
        exit_with_error("--number must be at least 1", ExitCode.USAGE_ERROR)

    include, exclude = _parse_revisions(revisions)
    with open_repository() as repo:
        log_range = LogRange(
            include=tuple(include) or ("HEAD",),
            exclude=tuple(exclude),
            max_entries=n,
            paths=tuple(str(p) for p in _absolute(path)),
        )
        commits = repo.log(log_range)

    if not commits:
        console.print("[dim]No commits yet[/dim]")
        return

    for commit in commits:
        subject = commit.summary or "(no message)"
        console.print(
            f"[yellow]{commit.sha[:8]}[/yellow] {escape(subject)}", highlight=False
        )
        author = escape(f"{commit.author_name} <{commit.author_email}>")
        console.print(f"  [dim]{author}[/dim]", highlight=False)
        console.print(
            f"  [dim]{commit.timestamp.strftime('%Y-%m-%d %H:%M:%S %z')} "
            f"({commit.files_changed} file(s))[/dim]"
        )
        if ctx.verbose:
            body = commit.message.strip().splitlines()[1:]
            for line in body:
                console.print(f"    {line}", markup=False, highlight=False)
        console.print()
