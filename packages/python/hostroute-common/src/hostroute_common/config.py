"""Central configuration for hostroute."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

from hostroute_common.constants import (
    AUDIT_DB_PATH,
    AUDIT_JSONL_PATH,
    CERTBOT_TIMEOUT,
    CERTS_ROOT,
    COMMAND_TIMEOUT,
    LOG_DIR,
    NGINX_DIR,
    NGINX_MAIN_CONF,
    NGINX_SERVICE,
    PORT_RELEASE_DELAY,
    PORT_VERIFY_DELAY,
    REGISTRY_PATH,
    SITES_AVAILABLE,
    SITES_ENABLED,
)


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


class HostRouteConfig(BaseModel):
    """Runtime configuration resolved once at startup."""

    host_id: str = Field(default_factory=lambda: os.environ.get("HOSTROUTE_HOST_ID", "host-01"))
    nginx_dir: Path = Field(default_factory=lambda: _env_path("HOSTROUTE_NGINX_DIR", NGINX_DIR))
    certs_root: Path = Field(default_factory=lambda: _env_path("HOSTROUTE_CERTS_ROOT", CERTS_ROOT))
    service_name: str = Field(default_factory=lambda: os.environ.get("HOSTROUTE_SERVICE", NGINX_SERVICE))
    certbot_email: str = Field(default_factory=lambda: os.environ.get("HOSTROUTE_CERTBOT_EMAIL", ""))
    command_timeout: float = Field(
        default_factory=lambda: _env_float("HOSTROUTE_COMMAND_TIMEOUT", COMMAND_TIMEOUT), gt=0
    )
    certbot_timeout: float = Field(
        default_factory=lambda: _env_float("HOSTROUTE_CERTBOT_TIMEOUT", CERTBOT_TIMEOUT), gt=0
    )
    port_release_delay: float = Field(default=PORT_RELEASE_DELAY, ge=0)
    port_verify_delay: float = Field(default=PORT_VERIFY_DELAY, ge=0)
    require_root: bool = Field(default_factory=lambda: _env_flag("HOSTROUTE_REQUIRE_ROOT", True))
    log_dir: Path = Field(default_factory=lambda: _env_path("HOSTROUTE_LOG_DIR", LOG_DIR))
    audit_jsonl_path: Path = Field(
        default_factory=lambda: _env_path("HOSTROUTE_AUDIT_JSONL", AUDIT_JSONL_PATH)
    )
    audit_db_path: Path = Field(default_factory=lambda: _env_path("HOSTROUTE_AUDIT_DB", AUDIT_DB_PATH))
    registry_path: Path = Field(default_factory=lambda: _env_path("HOSTROUTE_REGISTRY", REGISTRY_PATH))

    @property
    def sites_available_dir(self) -> Path:
        return self.nginx_dir / SITES_AVAILABLE

    @property
    def sites_enabled_dir(self) -> Path:
        return self.nginx_dir / SITES_ENABLED

    @property
    def nginx_conf_path(self) -> Path:
        return self.nginx_dir / NGINX_MAIN_CONF

    def site_config_path(self, domain: str) -> Path:
        return self.sites_available_dir / domain

    def site_link_path(self, domain: str) -> Path:
        return self.sites_enabled_dir / domain
