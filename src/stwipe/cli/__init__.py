"""Typer command-line interface for Stwipe."""

from stwipe.cli.main import create_app, main

__all__ = ["create_app", "main"]
