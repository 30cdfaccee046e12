"""NGINX service control through systemd, and config validation."""

from __future__ import annotations

from hostroute_common import HostRouteConfig

from hostroute.errors import ConfigTestError, ProxyCommandError
from hostroute.services import system
from hostroute.services.system import CommandResult


class SystemdNginx:
    """Front-end proxy controller backed by ``systemctl`` and ``nginx -t``."""

    def __init__(self, service: str = "nginx", *, binary: str = "nginx", timeout: float | None = None):
        self.service = service
        self.binary = binary
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg: HostRouteConfig) -> SystemdNginx:
        return cls(cfg.service_name, timeout=cfg.command_timeout)

    def _systemctl(self, *args: str) -> CommandResult:
        return system.run(["systemctl", *args, self.service], timeout=self.timeout)

    def ensure_available(self) -> None:
        system.require_tool(self.binary, "Nginx is not installed. Please install nginx first.")

    def is_active(self) -> bool:
        return self._systemctl("is-active", "--quiet").ok

    def stop(self) -> CommandResult:
        return self._systemctl("stop")

    def start(self) -> CommandResult:
        return self._systemctl("start")

    def enable_autostart(self) -> CommandResult:
        return self._systemctl("enable")

    def reload(self) -> CommandResult:
        return self._systemctl("reload")

    def test_config(self) -> CommandResult:
        return system.run([self.binary, "-t"], timeout=self.timeout)


def validate_config(proxy: SystemdNginx) -> None:
    """Run the syntax test. Raises ConfigTestError on failure."""
    result = proxy.test_config()
    if not result.ok:
        raise ConfigTestError(f"NGINX config test failed:\n{result.message}")


def reload(proxy: SystemdNginx) -> None:
    """Validate config, then reload NGINX."""
    validate_config(proxy)
    result = proxy.reload()
    if not result.ok:
        raise ProxyCommandError(f"NGINX reload failed:\n{result.message}")
