"""Certbot certificate issuance (standalone HTTP-01)."""

from __future__ import annotations

from hostroute_common import HostRouteConfig

from hostroute.errors import CertificateError
from hostroute.services import system


def issue_command(domain: str, *, email: str = "", binary: str = "certbot") -> list[str]:
    """Build the non-interactive standalone issuance command."""
    cmd = [
        binary, "certonly", "--standalone",
        "-d", domain,
        "--non-interactive", "--agree-tos",
    ]
    if email:
        cmd.extend(["--email", email, "--no-eff-email"])
    else:
        cmd.append("--register-unsafely-without-email")
    return cmd


class StandaloneCertbot:
    """Issues certificates with certbot binding ports 80/443 itself.

    The front-end proxy must already be stopped when ``issue`` is called.
    """

    def __init__(self, *, email: str = "", binary: str = "certbot", timeout: float | None = None):
        self.email = email
        self.binary = binary
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg: HostRouteConfig) -> StandaloneCertbot:
        return cls(email=cfg.certbot_email, timeout=cfg.certbot_timeout)

    def ensure_available(self) -> None:
        system.require_tool(self.binary, "Certbot is not installed. Please install certbot first.")

    def issue(self, domain: str) -> None:
        result = system.run(issue_command(domain, email=self.email, binary=self.binary), timeout=self.timeout)
        if not result.ok:
            raise CertificateError(f"Certbot failed for {domain}:\n{result.message}")
