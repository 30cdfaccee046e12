"""Shared models, constants and configuration for hostroute."""

from hostroute_common.constants import (
    AUDIT_DB_PATH,
    AUDIT_JSONL_PATH,
    BACKUP_TIMESTAMP_FORMAT,
    CERTS_ROOT,
    HTTP_PORT,
    HTTPS_PORT,
    LOG_DIR,
    NGINX_DIR,
    REGISTRY_PATH,
)
from hostroute_common.config import HostRouteConfig
from hostroute_common.models.audit_event import AuditEvent
from hostroute_common.models.route import BackendProtocol, CertificatePaths, RouteRecord, RouteSpec

__all__ = [
    "AUDIT_DB_PATH",
    "AUDIT_JSONL_PATH",
    "AuditEvent",
    "BACKUP_TIMESTAMP_FORMAT",
    "BackendProtocol",
    "CERTS_ROOT",
    "CertificatePaths",
    "HTTPS_PORT",
    "HTTP_PORT",
    "HostRouteConfig",
    "LOG_DIR",
    "NGINX_DIR",
    "REGISTRY_PATH",
    "RouteRecord",
    "RouteSpec",
]
