"""Shared Pydantic models."""

from hostroute_common.models.audit_event import AuditEvent
from hostroute_common.models.route import BackendProtocol, CertificatePaths, RouteRecord, RouteSpec

__all__ = ["AuditEvent", "BackendProtocol", "CertificatePaths", "RouteRecord", "RouteSpec"]
