"""Shared test fixtures."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from hostroute_common import HostRouteConfig

from hostroute.services.pipeline import RouteConfigurator

from fakes import FIXED_NOW, NGINX_CONF, FakeIssuer, FakePorts, FakeProxy, ScriptedPrompter


@pytest.fixture
def tmp_config(tmp_path: Path) -> HostRouteConfig:
    """Return a HostRouteConfig pointing at temp directories."""
    nginx_dir = tmp_path / "nginx"
    (nginx_dir / "sites-available").mkdir(parents=True)
    (nginx_dir / "sites-enabled").mkdir(parents=True)
    (nginx_dir / "nginx.conf").write_text(NGINX_CONF)
    return HostRouteConfig(
        host_id="test-host",
        nginx_dir=nginx_dir,
        certs_root=tmp_path / "letsencrypt" / "live",
        certbot_email="",
        port_release_delay=0,
        port_verify_delay=0,
        require_root=False,
        log_dir=tmp_path / "log",
        audit_jsonl_path=tmp_path / "log" / "audit.jsonl",
        audit_db_path=tmp_path / "lib" / "audit.db",
        registry_path=tmp_path / "lib" / "routes.json",
    )


@pytest.fixture
def make_configurator(tmp_config: HostRouteConfig):
    """Build a RouteConfigurator wired to fakes; unspecified collaborators get defaults."""

    def _make(
        *,
        proxy: FakeProxy | None = None,
        issuer: FakeIssuer | None = None,
        ports: FakePorts | None = None,
        prompter: ScriptedPrompter | None = None,
    ) -> RouteConfigurator:
        return RouteConfigurator(
            tmp_config,
            proxy=proxy or FakeProxy(),
            issuer=issuer or FakeIssuer(),
            ports=ports or FakePorts(),
            prompter=prompter or ScriptedPrompter(),
            console=Console(file=io.StringIO(), width=200),
            now=lambda: FIXED_NOW,
            sleep=lambda seconds: None,
        )

    return _make
