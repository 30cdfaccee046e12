"""Root Typer application for the hostroute CLI."""

from __future__ import annotations

import typer

from hostroute.commands import configure, route

app = typer.Typer(
    name="hostroute",
    help="Host-level routing configurator: HTTPS nginx vhosts in front of local backends.",
    no_args_is_help=True,
)

app.command(name="configure")(configure.configure)
app.add_typer(route.app, name="route", help="Inspect, preview and disable configured routes.")

if __name__ == "__main__":
    app()
