"""``stwipe`` console script."""

from __future__ import annotations

from typing import Optional, Sequence

import typer
from rich.console import Console

from stwipe.cli.commands import register_commands
from stwipe.cli.commands.study import ServiceFactory

APP_HELP = "Turn YouTube playlists into filtered study shorts and track what you have studied."


def create_app(console: Optional[Console] = None, *, service_factory: Optional[ServiceFactory] = None) -> typer.Typer:
    """Build the Typer application; every command writes to ``console``."""

    app = typer.Typer(name="stwipe", help=APP_HELP, add_completion=False, rich_markup_mode="rich")
    register_commands(app, console or Console(), service_factory=service_factory)
    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    create_app()(prog_name="stwipe", args=None if argv is None else list(argv))


__all__ = ["APP_HELP", "create_app", "main"]
