"""Command groups attached to the Stwipe CLI."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from stwipe import __version__
from stwipe.cli.commands import study


def register_commands(
    app: typer.Typer,
    console: Console,
    *,
    service_factory: Optional[study.ServiceFactory] = None,
) -> None:
    study.register(app, console, service_factory=service_factory)

    @app.callback(invoke_without_command=True)
    def root(
        ctx: typer.Context,
        version: bool = typer.Option(False, "--version", help="Show the installed version and exit."),
    ) -> None:
        if version:
            console.print(f"stwipe {__version__}")
            raise typer.Exit()
        if ctx.invoked_subcommand is None:
            console.print(ctx.get_help())


__all__ = ["register_commands"]
