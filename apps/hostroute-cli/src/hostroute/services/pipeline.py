"""Route configuration pipeline.

START -> VALIDATING -> BUILDING_SPEC -> STOPPING_PROXY -> REQUESTING_CERT
  -> RENDERING_CONFIG -> RECONCILING_STATE -> TESTING_CONFIG
  -> STARTING_PROXY -> VERIFYING_PORTS -> SUCCESS

A failed certificate request is recorded and the run continues. A failed
config test, or a filesystem error while enabling the site, puts the
activation link and vhost file back as they were (ROLLBACK_LINK) and ends in
FAILED. The operator may abort while reconciling (ABORTED). Whatever the
terminal state, if the proxy was stopped and not yet started, one final start
is attempted so the host is not left without a listener.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from rich.console import Console
from rich.markup import escape

from hostroute_common import HTTP_PORT, HTTPS_PORT, HostRouteConfig, RouteSpec

from hostroute.errors import (
    CertificateError,
    ConfigTestError,
    HostRouteError,
    ProxyCommandError,
    RouteValidationError,
    StateConflictError,
)
from hostroute.services import site_state, upgrade_map
from hostroute.services.site_state import LinkAction, LinkResult, WriteResult
from hostroute.services.system import CommandResult
from hostroute.services.validation import (
    Resolution,
    ValidationResult,
    build_route_spec,
    parse_protocol,
    parse_yes_no,
    validate_domain,
    validate_port,
)
from hostroute.services.vhost_renderer import render_vhost

WELL_KNOWN_PORTS = (HTTP_PORT, HTTPS_PORT)
TOTAL_STEPS = 6


class PipelineState(str, Enum):
    START = "start"
    VALIDATING = "validating"
    BUILDING_SPEC = "building_spec"
    STOPPING_PROXY = "stopping_proxy"
    REQUESTING_CERT = "requesting_cert"
    RENDERING_CONFIG = "rendering_config"
    RECONCILING_STATE = "reconciling_state"
    TESTING_CONFIG = "testing_config"
    ROLLBACK_LINK = "rollback_link"
    STARTING_PROXY = "starting_proxy"
    VERIFYING_PORTS = "verifying_ports"
    SUCCESS = "success"
    ABORTED = "aborted"
    FAILED = "failed"


class ProxyController(Protocol):
    def ensure_available(self) -> None: ...
    def is_active(self) -> bool: ...
    def stop(self) -> CommandResult: ...
    def start(self) -> CommandResult: ...
    def enable_autostart(self) -> CommandResult: ...
    def test_config(self) -> CommandResult: ...
    def reload(self) -> CommandResult: ...


class CertificateIssuer(Protocol):
    def ensure_available(self) -> None: ...
    def issue(self, domain: str) -> None: ...


class PortTable(Protocol):
    def free(self, port: int) -> bool: ...
    def listening(self) -> set[int]: ...


class Prompter(Protocol):
    def confirm_override(self, result: ValidationResult) -> bool: ...
    def confirm_route(self, route: RouteSpec) -> bool: ...
    def choose_existing_config(self, path: Path) -> str: ...
    def show_existing_config(self, path: Path, content: str) -> None: ...


@dataclass(frozen=True)
class RawRouteInput:
    """Unvalidated operator input, as typed or passed on the command line."""

    domain: str | None
    port: str | None
    protocol: str | None = None
    ipv6: str | None = None
    upgrade: str | None = None


@dataclass
class PipelineOutcome:
    state: PipelineState = PipelineState.START
    history: list[PipelineState] = field(default_factory=list)
    route: RouteSpec | None = None
    config_path: Path | None = None
    write: WriteResult | None = None
    link: LinkResult | None = None
    upgrade_map_inserted: bool = False
    certificate_issued: bool | None = None
    certificate_error: CertificateError | None = None
    ports: dict[int, bool] = field(default_factory=dict)
    proxy_was_active: bool | None = None
    proxy_running: bool | None = None
    abort_reason: str = ""
    error: HostRouteError | None = None

    @property
    def exit_code(self) -> int:
        if self.state is PipelineState.FAILED and self.error is not None:
            return self.error.exit_code
        return 0


class _Aborted(Exception):
    """Clean operator abort; exits 0."""


class RouteConfigurator:
    """Runs one route through the full provisioning pipeline."""

    def __init__(
        self,
        cfg: HostRouteConfig,
        *,
        proxy: ProxyController,
        issuer: CertificateIssuer,
        ports: PortTable,
        prompter: Prompter,
        console: Console | None = None,
        now: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.proxy = proxy
        self.issuer = issuer
        self.ports = ports
        self.prompter = prompter
        self.console = console or Console()
        self._now = now
        self._sleep = sleep
        self._proxy_stopped = False
        self._start_attempted = False
        self.outcome = PipelineOutcome()

    def run(self, raw: RawRouteInput) -> PipelineOutcome:
        self.outcome = PipelineOutcome()
        self._proxy_stopped = False
        self._start_attempted = False
        try:
            self._run(raw)
        except _Aborted as exc:
            self.outcome.abort_reason = str(exc)
            self.console.print(escape(str(exc)))
            self._enter(PipelineState.ABORTED)
        except HostRouteError as exc:
            self.outcome.error = exc
            self._enter(PipelineState.FAILED)
        except OSError as exc:
            self.outcome.error = StateConflictError(f"Filesystem error: {exc}")
            self._enter(PipelineState.FAILED)
        finally:
            self._restore_proxy()
        return self.outcome

    # -- stages -------------------------------------------------------------

    def _run(self, raw: RawRouteInput) -> None:
        self._enter(PipelineState.VALIDATING)
        domain, port = self._validate(raw)

        self._enter(PipelineState.BUILDING_SPEC)
        route = build_route_spec(
            domain,
            port,
            parse_protocol(raw.protocol),
            enable_ipv6=parse_yes_no(raw.ipv6),
            enable_upgrade=parse_yes_no(raw.upgrade),
        )
        self.outcome.route = route
        self._print_summary(route)
        if not self.prompter.confirm_route(route):
            raise _Aborted("Aborted by user")

        self.proxy.ensure_available()
        self.issuer.ensure_available()

        config_path = self.cfg.site_config_path(route.domain)
        link_path = self.cfg.site_link_path(route.domain)
        self.outcome.config_path = config_path

        self._enter(PipelineState.STOPPING_PROXY)
        self._step(1, "Stopping NGINX and freeing ports 80 and 443")
        self._stop_proxy()

        self._enter(PipelineState.REQUESTING_CERT)
        self._step(2, f"Obtaining SSL certificate for {route.domain}")
        self._request_certificate(route.domain)

        self._enter(PipelineState.RENDERING_CONFIG)
        self._step(3, "Generating NGINX configuration")
        content = render_vhost(route, certs_root=self.cfg.certs_root)

        self._enter(PipelineState.RECONCILING_STATE)
        self._write_config(config_path, content)

        try:
            self._step(4, "Enabling site configuration")
            self._enable(config_path, link_path)
            if route.enable_upgrade:
                self.outcome.upgrade_map_inserted = upgrade_map.ensure_upgrade_map(self.cfg.nginx_conf_path)
                if self.outcome.upgrade_map_inserted:
                    self.console.print(f"  Added connection upgrade map to {self.cfg.nginx_conf_path}")
            self._enter(PipelineState.TESTING_CONFIG)
            self._step(5, "Testing NGINX configuration")
            result = self.proxy.test_config()
            if not result.ok:
                raise ConfigTestError(f"NGINX configuration test failed:\n{result.message}")
        except (HostRouteError, OSError):
            self._enter(PipelineState.ROLLBACK_LINK)
            self._rollback(config_path, link_path)
            raise

        self._enter(PipelineState.STARTING_PROXY)
        self._step(6, "Starting NGINX")
        self._start_proxy()

        self._enter(PipelineState.VERIFYING_PORTS)
        self._verify_ports()
        self._enter(PipelineState.SUCCESS)

    def _validate(self, raw: RawRouteInput) -> tuple[str, int]:
        domain = validate_domain(raw.domain)
        port = validate_port(raw.port)
        for result in (domain, port):
            if result.resolution is Resolution.REJECT:
                raise result.to_error()
        if domain.resolution is Resolution.ASK_OPERATOR:
            self._warn(domain.reason)
            if not self.prompter.confirm_override(domain):
                raise RouteValidationError(f"Domain rejected by operator: {domain.value}", field="domain")
        return domain.value, port.value

    def _stop_proxy(self) -> None:
        self.outcome.proxy_was_active = self.proxy.is_active()
        self._proxy_stopped = True
        result = self.proxy.stop()
        if not result.ok:
            self._warn(f"Stopping NGINX reported an error: {result.message}")
        for port in WELL_KNOWN_PORTS:
            if not self.ports.free(port):
                self._warn(f"Could not free port {port} (fuser unavailable)")
        self._sleep(self.cfg.port_release_delay)

    def _request_certificate(self, domain: str) -> None:
        try:
            self.issuer.issue(domain)
        except CertificateError as exc:
            self.outcome.certificate_issued = False
            self.outcome.certificate_error = exc
            self.console.print(f"  [red]Failed to obtain SSL certificate:[/red] {escape(str(exc))}")
            self._warn("Continuing; the route will only work once a certificate exists")
        else:
            self.outcome.certificate_issued = True

    def _write_config(self, config_path: Path, content: str) -> None:
        choice = None
        if config_path.exists():
            self._warn(f"Configuration file already exists: {config_path}")
            choice = site_state.parse_existing_choice(self.prompter.choose_existing_config(config_path))
        result = site_state.write_site_config(config_path, content, choice, now=self._now)
        self.outcome.write = result
        if not result.written:
            if result.existing_content is not None:
                self.prompter.show_existing_config(config_path, result.existing_content)
            raise _Aborted("Exiting without changes")
        if result.backup_path is not None:
            self.console.print(f"  Backup created: {escape(str(result.backup_path))}")
        self.console.print(f"  Configuration written to: {escape(str(config_path))}")

    def _enable(self, config_path: Path, link_path: Path) -> None:
        result = site_state.enable_site(config_path, link_path, now=self._now)
        self.outcome.link = result
        if result.action is LinkAction.REPAIRED:
            self._warn(f"Replaced broken symbolic link {link_path}")
        elif result.action is LinkAction.REPLACED_FILE:
            self._warn(f"Found regular file instead of symbolic link at {link_path}")
            self.console.print(f"  Backup created: {escape(str(result.backup_path))}")
        elif result.action is LinkAction.UPDATED:
            self.console.print("  Updated existing symbolic link")

    def _rollback(self, config_path: Path, link_path: Path) -> None:
        """Put the activation link and vhost file back the way this run found them."""
        link = self.outcome.link
        if link is not None:
            self._warn(f"Removing activation link {link_path}")
            site_state.restore_site_link(link_path, link)
            if link.previous_target is not None:
                self.console.print(f"  Re-linked {escape(str(link_path))} -> {escape(str(link.previous_target))}")
            elif link.backup_path is not None:
                self.console.print(f"  Restored {escape(str(link_path))} from {escape(str(link.backup_path))}")
        write = self.outcome.write
        if write is not None and site_state.restore_site_config(config_path, write):
            self.console.print(f"  Restored previous configuration in {escape(str(config_path))}")

    def _start_proxy(self) -> None:
        self._start_attempted = True
        result = self.proxy.start()
        if not result.ok:
            self.outcome.proxy_running = False
            raise ProxyCommandError(f"Failed to start NGINX:\n{result.message}")
        self.outcome.proxy_running = True
        autostart = self.proxy.enable_autostart()
        if not autostart.ok:
            self._warn("Failed to enable NGINX auto-start")

    def _verify_ports(self) -> None:
        self._sleep(self.cfg.port_verify_delay)
        listening = self.ports.listening()
        for port in WELL_KNOWN_PORTS:
            ok = port in listening
            self.outcome.ports[port] = ok
            if ok:
                self.console.print(f"  [green]✓[/green] Port {port} is listening")
            else:
                self._warn(f"✗ Port {port} is not listening")

    def _restore_proxy(self) -> None:
        if not self._proxy_stopped or self._start_attempted:
            return
        self._start_attempted = True
        self.console.print("Restarting NGINX")
        try:
            result = self.proxy.start()
        except HostRouteError as exc:
            self.outcome.proxy_running = False
            self._warn(f"Could not restart NGINX: {exc}")
            return
        self.outcome.proxy_running = result.ok
        if not result.ok:
            self._warn(f"Could not restart NGINX: {result.message}")

    # -- helpers ------------------------------------------------------------

    def _enter(self, state: PipelineState) -> None:
        self.outcome.state = state
        self.outcome.history.append(state)

    def _step(self, n: int, text: str) -> None:
        self.console.print(f"[bold][{n}/{TOTAL_STEPS}][/bold] {escape(text)}")

    def _warn(self, text: str) -> None:
        self.console.print(f"  [yellow]Warning:[/yellow] {escape(text)}")

    def _print_summary(self, route: RouteSpec) -> None:
        self.console.print("\n[bold]Configuration Summary:[/bold]")
        self.console.print(f"  Domain: {escape(route.domain)}")
        self.console.print(f"  Backend: {route.backend_url}")
        self.console.print(f"  IPv6 Support: {'yes' if route.enable_ipv6 else 'no'}")
        self.console.print(f"  SSE/WebSocket Support: {'yes' if route.enable_upgrade else 'no'}")
        self.console.print()
