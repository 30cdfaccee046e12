"""End-to-end CLI tests through Typer's CliRunner, with host collaborators faked."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from hostroute_common import HostRouteConfig, RouteRecord, RouteSpec
from hostroute.cli import app
from hostroute.services.registry import load_registry, record_route

from fakes import FakeIssuer, FakePorts, FakeProxy, certbot_failure

runner = CliRunner()


@pytest.fixture
def host(monkeypatch, tmp_config: HostRouteConfig):
    """Point every command at tmp_config and in-memory collaborators."""
    fakes = SimpleNamespace(cfg=tmp_config, proxy=FakeProxy(), issuer=FakeIssuer(), ports=FakePorts())

    def use_config(cfg: HostRouteConfig) -> None:
        fakes.cfg = cfg
        for target in (
            "hostroute.commands.configure.get_config",
            "hostroute.commands.route.get_config",
            "hostroute.audit.get_config",
        ):
            monkeypatch.setattr(target, lambda: cfg)

    use_config(tmp_config)
    fakes.use_config = use_config
    monkeypatch.setenv("HOSTROUTE_ACTOR", "tester")
    monkeypatch.setattr("hostroute.commands.configure._proxy", lambda cfg: fakes.proxy)
    monkeypatch.setattr("hostroute.commands.configure._issuer", lambda cfg: fakes.issuer)
    monkeypatch.setattr("hostroute.commands.configure._ports", lambda cfg: fakes.ports)
    monkeypatch.setattr("hostroute.commands.route._proxy", lambda cfg: fakes.proxy)
    # wide enough that tables and messages never wrap
    monkeypatch.setattr("hostroute.commands.configure.console", Console(width=200))
    monkeypatch.setattr("hostroute.commands.route.console", Console(width=200))
    return fakes


def _audit_lines(cfg: HostRouteConfig) -> list[dict]:
    return [json.loads(line) for line in cfg.audit_jsonl_path.read_text().splitlines()]


class TestRender:
    def test_prints_vhost(self, host):
        result = runner.invoke(app, ["route", "render", "example.com", "3000", "--upgrade"])
        assert result.exit_code == 0
        assert "proxy_pass http://localhost:3000;" in result.output
        assert "proxy_set_header Connection $connection_upgrade;" in result.output
        assert f"{host.cfg.certs_root}/example.com/fullchain.pem" in result.output

    def test_https_backend_and_ipv6(self, host):
        result = runner.invoke(app, ["route", "render", "example.com", "8443", "https", "--ipv6"])
        assert result.exit_code == 0
        assert "proxy_pass https://localhost:8443;" in result.output
        assert "listen [::]:443 ssl;" in result.output

    def test_invalid_port(self, host):
        result = runner.invoke(app, ["route", "render", "example.com", "70000"])
        assert result.exit_code == 1
        assert "validation" in result.output

    def test_soft_domain_still_renders(self, host):
        result = runner.invoke(app, ["route", "render", "localhost", "3000"])
        assert result.exit_code == 0
        assert "server_name localhost;" in result.output


class TestConfigure:
    def test_arguments_and_yes(self, host):
        result = runner.invoke(app, ["configure", "api.example.com", "8080", "http", "--yes"], input="n\ny\n")
        assert result.exit_code == 0, result.output
        assert "Done!" in result.output

        cfg = host.cfg
        link = cfg.site_link_path("api.example.com")
        assert link.is_symlink()
        assert link.resolve() == cfg.site_config_path("api.example.com").resolve()
        assert "map $http_upgrade $connection_upgrade" in cfg.nginx_conf_path.read_text()
        assert host.proxy.calls == ["is_active", "stop", "test_config", "start", "enable_autostart"]

        record = load_registry(cfg.registry_path).routes["api.example.com"]
        assert record.backend_port == 8080
        assert record.enable_upgrade is True
        assert record.certificate_issued is True

        events = _audit_lines(cfg)
        assert len(events) == 1
        assert events[0]["action"] == "route.configure"
        assert events[0]["actor"] == "tester"
        assert events[0]["result"] == "success"
        assert events[0]["route_state"] == "success"
        assert events[0]["certificate_issued"] is True

    def test_fully_interactive(self, host):
        answers = "example.com\n3000\n2\ny\nn\ny\n"
        result = runner.invoke(app, ["configure"], input=answers)
        assert result.exit_code == 0, result.output
        config = host.cfg.site_config_path("example.com").read_text()
        assert "proxy_pass https://localhost:3000;" in config
        assert "listen [::]:443 ssl;" in config
        assert "proxy_set_header Connection keep-alive;" in config

    def test_summary_declined(self, host):
        result = runner.invoke(app, ["configure", "example.com", "3000", "http"], input="n\nn\nn\n")
        assert result.exit_code == 0
        assert "Aborted by user" in result.output
        assert host.proxy.calls == []
        assert not host.cfg.registry_path.exists()

    def test_invalid_port(self, host):
        result = runner.invoke(app, ["configure", "example.com", "abc", "http", "--yes"], input="n\nn\n")
        assert result.exit_code == 1
        assert "validation" in result.output
        assert host.proxy.calls == []
        assert _audit_lines(host.cfg)[0]["result"] == "failure"

    def test_existing_config_exit(self, host):
        config = host.cfg.site_config_path("example.com")
        config.write_text("old\n")
        result = runner.invoke(app, ["configure", "example.com", "3000", "http", "--yes"], input="n\nn\n4\n")
        assert result.exit_code == 0
        assert "Exiting without changes" in result.output
        assert config.read_text() == "old\n"
        assert not host.cfg.registry_path.exists()
        assert host.proxy.calls == ["is_active", "stop", "start"]

    def test_config_test_failure(self, host):
        host.proxy = FakeProxy(test_ok=False)
        result = runner.invoke(app, ["configure", "example.com", "3000", "http", "--yes"], input="n\nn\n")
        assert result.exit_code == 1
        assert "config_test" in result.output
        assert not host.cfg.site_link_path("example.com").is_symlink()
        assert host.proxy.calls[-1] == "start"
        assert not host.cfg.registry_path.exists()

    def test_certificate_failure_recorded(self, host):
        host.issuer = FakeIssuer(error=certbot_failure("example.com"))
        result = runner.invoke(app, ["configure", "example.com", "3000", "http", "--yes"], input="n\nn\n")
        assert result.exit_code == 0
        record = load_registry(host.cfg.registry_path).routes["example.com"]
        assert record.certificate_issued is False

    def test_requires_root(self, host):
        host.use_config(host.cfg.model_copy(update={"require_root": True}))
        with patch("hostroute.services.system.os.geteuid", return_value=1000):
            result = runner.invoke(app, ["configure", "example.com", "3000", "http", "--yes"])
        assert result.exit_code == 1
        assert "permission" in result.output
        assert host.proxy.calls == []


class TestRouteCommands:
    def _record(self, host, domain: str = "example.com") -> None:
        spec = RouteSpec(domain=domain, backend_port=3000)
        config = host.cfg.site_config_path(domain)
        config.write_text("server {\n    server_name example.com;\n}\n")
        host.cfg.site_link_path(domain).symlink_to(config)
        record_route(host.cfg.registry_path, RouteRecord.from_spec(spec, config))

    def test_list_empty(self, host):
        result = runner.invoke(app, ["route", "list"])
        assert result.exit_code == 0
        assert "No routes recorded." in result.output

    def test_list(self, host):
        self._record(host)
        result = runner.invoke(app, ["route", "list"])
        assert result.exit_code == 0
        assert "example.com" in result.output

    def test_show(self, host):
        self._record(host)
        result = runner.invoke(app, ["route", "show", "example.com"])
        assert result.exit_code == 0
        assert "server_name" in result.output

    def test_show_missing(self, host):
        result = runner.invoke(app, ["route", "show", "nope.example.com"])
        assert result.exit_code == 1

    def test_disable(self, host):
        self._record(host)
        result = runner.invoke(app, ["route", "disable", "example.com"])
        assert result.exit_code == 0, result.output
        link = host.cfg.site_link_path("example.com")
        assert not link.is_symlink()
        assert host.cfg.site_config_path("example.com").exists()
        assert host.proxy.calls == ["test_config", "reload"]
        assert load_registry(host.cfg.registry_path).routes["example.com"].enabled is False
        assert _audit_lines(host.cfg)[-1]["action"] == "route.disable"

    def test_disable_restores_link_on_test_failure(self, host):
        self._record(host)
        host.proxy = FakeProxy(test_ok=False)
        result = runner.invoke(app, ["route", "disable", "example.com"])
        assert result.exit_code == 1
        assert "config_test" in result.output
        assert host.cfg.site_link_path("example.com").is_symlink()
        assert host.proxy.calls == ["test_config"]
        assert load_registry(host.cfg.registry_path).routes["example.com"].enabled is True

    def test_disable_not_enabled(self, host):
        result = runner.invoke(app, ["route", "disable", "example.com"])
        assert result.exit_code == 0
        assert "not enabled" in result.output
        assert host.proxy.calls == []

    @pytest.mark.parametrize("name", ["../../../etc/shadow", "..", "a b.com"])
    def test_show_rejects_paths_outside_sites(self, host, name):
        secret = host.cfg.nginx_dir / "secret"
        secret.write_text("do not print\n")
        result = runner.invoke(app, ["route", "show", name])
        assert result.exit_code == 1
        assert "validation" in result.output
        assert "do not print" not in result.output

    def test_disable_rejects_paths_outside_sites(self, host):
        result = runner.invoke(app, ["route", "disable", "../sites-available/example.com"])
        assert result.exit_code == 1
        assert "validation" in result.output
        assert host.proxy.calls == []

    def test_history(self, host):
        runner.invoke(app, ["configure", "example.com", "3000", "http", "--yes"], input="n\nn\n")
        disabled = runner.invoke(app, ["route", "disable", "Example.COM"])
        assert disabled.exit_code == 0, disabled.output

        result = runner.invoke(app, ["route", "history", "example.com"])
        assert result.exit_code == 0
        assert "route.configure" in result.output
        assert "route.disable" in result.output
        assert "issued" in result.output
        assert result.output.index("route.disable") < result.output.index("route.configure")

    def test_history_empty(self, host):
        result = runner.invoke(app, ["route", "history", "example.com"])
        assert result.exit_code == 0
        assert "No audit events" in result.output
