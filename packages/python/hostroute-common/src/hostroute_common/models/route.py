"""Route models: what gets proxied where, and what was recorded about it."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class BackendProtocol(str, Enum):
    HTTP = "http"
    HTTPS = "https"


class RouteSpec(BaseModel):
    """One domain's reverse-proxy mapping to a local backend.

    Frozen: reconfiguring a route means building a new RouteSpec.
    """

    model_config = ConfigDict(frozen=True)

    domain: str = Field(min_length=1)
    backend_port: int = Field(ge=1, le=65535)
    backend_protocol: BackendProtocol = BackendProtocol.HTTP
    enable_ipv6: bool = False
    enable_upgrade: bool = False

    @property
    def backend_url(self) -> str:
        return f"{self.backend_protocol.value}://localhost:{self.backend_port}"


class CertificatePaths(BaseModel):
    """Conventional certbot file locations for a domain."""

    model_config = ConfigDict(frozen=True)

    fullchain: Path
    privkey: Path

    @classmethod
    def for_domain(cls, certs_root: Path, domain: str) -> CertificatePaths:
        return cls(
            fullchain=certs_root / domain / "fullchain.pem",
            privkey=certs_root / domain / "privkey.pem",
        )


class RouteRecord(BaseModel):
    """Registry entry written after a route has been configured."""

    domain: str
    backend_port: int
    backend_protocol: BackendProtocol = BackendProtocol.HTTP
    enable_ipv6: bool = False
    enable_upgrade: bool = False
    config_path: Path
    certificate_issued: bool = True
    enabled: bool = True
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_spec(cls, spec: RouteSpec, config_path: Path, *, certificate_issued: bool = True) -> RouteRecord:
        return cls(
            domain=spec.domain,
            backend_port=spec.backend_port,
            backend_protocol=spec.backend_protocol,
            enable_ipv6=spec.enable_ipv6,
            enable_upgrade=spec.enable_upgrade,
            config_path=config_path,
            certificate_issued=certificate_issued,
        )

    @property
    def backend_url(self) -> str:
        return f"{self.backend_protocol.value}://localhost:{self.backend_port}"
