"""Typer command groups."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from hostroute.errors import HostRouteError


def fail(console: Console, exc: HostRouteError) -> NoReturn:
    """Report a HostRouteError and exit with its code."""
    console.print(f"[red]Error ({exc.kind.value}):[/red] {escape(str(exc))}")
    raise typer.Exit(exc.exit_code)
