"""Interactive route configuration command."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from hostroute_common import HostRouteConfig, RouteRecord, RouteSpec

from hostroute.audit import audit
from hostroute.commands import fail
from hostroute.config import get_config
from hostroute.errors import HostRouteError
from hostroute.services import registry, system
from hostroute.services.certbot import StandaloneCertbot
from hostroute.services.nginx import SystemdNginx
from hostroute.services.pipeline import PipelineOutcome, PipelineState, RawRouteInput, RouteConfigurator
from hostroute.services.site_state import EXISTING_CONFIG_MENU
from hostroute.services.system import HostPorts
from hostroute.services.validation import ValidationResult, parse_yes_no

console = Console()


def _ask(text: str, default: str = "") -> str:
    return typer.prompt(text, default=default, show_default=False)


class TyperPrompter:
    """Operator prompts on the terminal."""

    def __init__(self, *, assume_yes: bool = False):
        self.assume_yes = assume_yes

    def confirm_override(self, result: ValidationResult) -> bool:
        return parse_yes_no(_ask("Continue anyway? (y/N)"))

    def confirm_route(self, route: RouteSpec) -> bool:
        if self.assume_yes:
            return True
        return parse_yes_no(_ask("Proceed with this configuration? (y/N)"))

    def choose_existing_config(self, path: Path) -> str:
        console.print("Choose an option:")
        for choice, label in EXISTING_CONFIG_MENU:
            console.print(f"  {choice.value}) {label}")
        return _ask("Enter choice (1-4)")

    def show_existing_config(self, path: Path, content: str) -> None:
        console.print(f"Current configuration ({escape(str(path))}):")
        console.print(Syntax(content, "nginx", theme="monokai"))


def _proxy(cfg: HostRouteConfig) -> SystemdNginx:
    return SystemdNginx.from_config(cfg)


def _issuer(cfg: HostRouteConfig) -> StandaloneCertbot:
    return StandaloneCertbot.from_config(cfg)


def _ports(cfg: HostRouteConfig) -> HostPorts:
    return HostPorts(timeout=cfg.command_timeout)


def configure(
    domain: Optional[str] = typer.Argument(None, help="Domain to route (prompted if omitted)"),
    port: Optional[str] = typer.Argument(None, help="Backend port on localhost (prompted if omitted)"),
    protocol: Optional[str] = typer.Argument(None, help="Backend protocol: http or https (prompted if omitted)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the final confirmation prompt"),
) -> None:
    """Route an HTTPS domain to a local backend: certificate, vhost, activation, reload."""
    cfg = get_config()

    if cfg.require_root:
        try:
            system.require_root()
        except HostRouteError as exc:
            fail(console, exc)

    if domain is None:
        domain = _ask("Enter Domain")
    if port is None:
        port = _ask("Enter Backend Port (the port your application runs on)")
    if protocol is None:
        console.print("Select backend protocol:")
        console.print("  1) HTTP (default)")
        console.print("  2) HTTPS")
        protocol = _ask("Enter choice (1 or 2)", default="1")
    ipv6 = _ask("Enable IPv6 support? (y/N)")
    upgrade = _ask("Enable Server-Sent Events (SSE) or WebSocket support? (y/N)")

    configurator = RouteConfigurator(
        cfg,
        proxy=_proxy(cfg),
        issuer=_issuer(cfg),
        ports=_ports(cfg),
        prompter=TyperPrompter(assume_yes=yes),
        console=console,
    )
    raw = RawRouteInput(domain=domain, port=port, protocol=protocol, ipv6=ipv6, upgrade=upgrade)

    try:
        with audit("route.configure", target=domain.strip().lower(), port=port, protocol=protocol) as event:
            outcome = configurator.run(raw)
            event.route_state = outcome.state.value
            event.certificate_issued = outcome.certificate_issued
            if outcome.error is not None:
                raise outcome.error
            if outcome.state is PipelineState.SUCCESS:
                registry.record_route(
                    cfg.registry_path,
                    RouteRecord.from_spec(
                        outcome.route,
                        outcome.config_path,
                        certificate_issued=bool(outcome.certificate_issued),
                    ),
                )
    except HostRouteError as exc:
        fail(console, exc)

    if outcome.state is PipelineState.SUCCESS:
        _print_done(outcome)


def _print_done(outcome: PipelineOutcome) -> None:
    route = outcome.route
    console.print(f"\n[green bold]Done![/green bold] https://{escape(route.domain)}/ → {route.backend_url}")
    console.print(f"Configuration file: {escape(str(outcome.config_path))}")
    backup = outcome.write.backup_path if outcome.write else None
    if backup is not None:
        console.print(f"Previous configuration backed up to: {escape(str(backup))}")
        console.print(
            f"  Restore with: cp {escape(str(backup))} {escape(str(outcome.config_path))} && systemctl reload nginx"
        )
    if outcome.certificate_issued is False:
        console.print(
            "[yellow]Warning:[/yellow] no certificate was issued in this run; "
            f"check DNS for {escape(route.domain)} and run again."
        )
    console.print("\nRemember to:")
    console.print(f"  - Ensure your application is running on port {route.backend_port}")
    console.print("  - Check automatic renewal: certbot renew --dry-run")
    console.print("  - Allow ports 80 and 443 in your firewall")
