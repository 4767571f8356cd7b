# pyright: reportUnusedCallResult=false
# ruff: noqa: D415, FBT002
"""Config command for viewing the effective nanogit configuration."""

from typing import Annotated

from cyclopts import Parameter
from rich.console import Console

from ._context import CLIContext
from ._shared import get_error_console


def config(
    changed: Annotated[
        bool,
        Parameter(
            name=["--changed"],
            help="Only show values that differ from the defaults",
        ),
    ] = False,
    sources: Annotated[
        bool,
        Parameter(name=["--sources"], help="List the configuration sources"),
    ] = False,
) -> None:
    """Show the effective configuration as TOML"""
    console = Console()
    ctx = CLIContext.get_current()

    if ctx.config_error is not None:
        get_error_console().print(
            f"[yellow]Warning:[/yellow] using defaults: {ctx.config_error}",
            highlight=False,
        )

    if sources:
        for source in ctx.config.sources:
            location = str(source.path) if source.path else "-"
            state = "found" if source.exists else "missing"
            console.print(
                f"[bold]{source.name.value:<10}[/bold] {location} [dim]({state})[/dim]",
                highlight=False,
            )
        console.print()

    console.print(
        ctx.config.to_toml(include_defaults=not changed),
        markup=False,
        highlight=False,
        end="",
    )
