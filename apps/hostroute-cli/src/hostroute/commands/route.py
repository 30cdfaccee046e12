"""Inspect, preview and disable configured routes."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from hostroute_common import HostRouteConfig

from hostroute.audit import audit, route_history
from hostroute.commands import fail
from hostroute.config import get_config
from hostroute.errors import ConfigTestError, HostRouteError, RouteValidationError
from hostroute.services import nginx, registry, site_state, system
from hostroute.services.nginx import SystemdNginx
from hostroute.services.validation import (
    Resolution,
    build_route_spec,
    parse_protocol,
    validate_domain,
    validate_port,
)
from hostroute.services.vhost_renderer import render_vhost

app = typer.Typer(no_args_is_help=True)
console = Console()


def _proxy(cfg: HostRouteConfig) -> SystemdNginx:
    return SystemdNginx.from_config(cfg)


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _known_domain(domain: str) -> str:
    """Normalise a domain argument; names that could escape the sites directories are rejected."""
    result = validate_domain(domain)
    if result.resolution is Resolution.REJECT:
        fail(console, result.to_error())
    if result.value in (".", ".."):
        fail(console, RouteValidationError(f"Invalid domain: {result.value!r}", field="domain"))
    return result.value


@app.command(name="list")
def list_routes() -> None:
    """List recorded routes and whether each is currently enabled."""
    cfg = get_config()
    routes = registry.load_registry(cfg.registry_path).routes

    if not routes:
        console.print("No routes recorded.")
        return

    table = Table(title="Configured Routes")
    table.add_column("Domain", style="cyan")
    table.add_column("Backend")
    table.add_column("IPv6")
    table.add_column("Upgrade")
    table.add_column("Certificate")
    table.add_column("Enabled", style="yellow")

    for domain in sorted(routes):
        record = routes[domain]
        enabled = site_state.is_enabled(cfg.site_config_path(domain), cfg.site_link_path(domain))
        table.add_row(
            domain,
            record.backend_url,
            _yes_no(record.enable_ipv6),
            _yes_no(record.enable_upgrade),
            "issued" if record.certificate_issued else "missing",
            _yes_no(enabled),
        )

    console.print(table)


@app.command()
def show(
    domain: str = typer.Argument(help="Domain name to show config for"),
) -> None:
    """Display the NGINX vhost config for a domain."""
    cfg = get_config()
    domain = _known_domain(domain)
    config_path = cfg.site_config_path(domain)

    if not config_path.is_file():
        console.print(f"[red]No vhost found for {escape(domain)}[/red]")
        raise typer.Exit(1)

    syntax = Syntax(config_path.read_text(), "nginx", theme="monokai")
    console.print(syntax)


@app.command()
def history(
    domain: str = typer.Argument(help="Domain to show audit history for"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of events to show"),
) -> None:
    """Show recent audited operations on a domain."""
    cfg = get_config()
    domain = _known_domain(domain)
    events = route_history(cfg.audit_db_path, domain, limit)

    if not events:
        console.print(f"No audit events for {escape(domain)}.")
        return

    table = Table(title=f"History: {escape(domain)}")
    table.add_column("Time")
    table.add_column("Actor")
    table.add_column("Action", style="cyan")
    table.add_column("Result")
    table.add_column("State")
    table.add_column("Certificate")

    for event in events:
        cert = "" if event.certificate_issued is None else ("issued" if event.certificate_issued else "missing")
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            escape(event.actor),
            event.action,
            event.result if event.error is None else f"{event.result}: {escape(event.error)}",
            event.route_state or "",
            cert,
        )

    console.print(table)


@app.command()
def render(
    domain: str = typer.Argument(help="Domain to render a vhost for"),
    port: str = typer.Argument(help="Backend port on localhost"),
    protocol: str = typer.Argument("http", help="Backend protocol: http or https"),
    ipv6: bool = typer.Option(False, "--ipv6", help="Add IPv6 listen directives"),
    upgrade: bool = typer.Option(False, "--upgrade", help="WebSocket/SSE handling"),
) -> None:
    """Print the vhost config a route would get, without touching the host."""
    cfg = get_config()
    domain_result = validate_domain(domain)
    port_result = validate_port(port)
    try:
        for result in (domain_result, port_result):
            if result.resolution is Resolution.REJECT:
                raise result.to_error()
    except HostRouteError as exc:
        fail(console, exc)
    if domain_result.resolution is Resolution.ASK_OPERATOR:
        typer.echo(f"# warning: {domain_result.reason}", err=True)

    route = build_route_spec(
        domain_result.value,
        port_result.value,
        parse_protocol(protocol),
        enable_ipv6=ipv6,
        enable_upgrade=upgrade,
    )
    typer.echo(render_vhost(route, certs_root=cfg.certs_root), nl=False)


@app.command()
def disable(
    domain: str = typer.Argument(help="Domain whose activation link to remove"),
) -> None:
    """Remove a site's activation link, then test and reload NGINX."""
    cfg = get_config()
    domain = _known_domain(domain)
    config_path = cfg.site_config_path(domain)
    link_path = cfg.site_link_path(domain)
    proxy = _proxy(cfg)

    try:
        if cfg.require_root:
            system.require_root()
        with audit("route.disable", target=domain) as event:
            removed = site_state.disable_site(link_path)
            event.params["removed"] = removed
            if removed:
                console.print(f"[bold][1/2][/bold] Removed activation link {escape(str(link_path))}")
                console.print("[bold][2/2][/bold] Testing and reloading NGINX")
                try:
                    nginx.reload(proxy)
                except ConfigTestError:
                    site_state.enable_site(config_path, link_path)
                    raise
                registry.set_enabled(cfg.registry_path, domain, False)
    except HostRouteError as exc:
        fail(console, exc)

    if removed:
        console.print(f"[green]{escape(domain)} disabled.[/green]")
    else:
        console.print(f"{escape(domain)} is not enabled.")
