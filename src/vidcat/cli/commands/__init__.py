"""Command registration utilities for the vidcat CLI."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from vidcat.cli.commands import catalog
from vidcat.config.settings import Settings


def register_commands(app: typer.Typer, console: Console, settings: Optional[Settings] = None) -> None:
    """Attach command groups to the provided Typer application."""

    catalog.register(app, console, settings)

    @app.callback(invoke_without_command=True)
    def main_callback(ctx: typer.Context) -> None:
        """Register YouTube videos in the catalog and browse them."""

        if ctx.invoked_subcommand is None:
            console.print("[bold green]vidcat ready. Run with --help to list commands.[/bold green]")


__all__ = ["register_commands"]
