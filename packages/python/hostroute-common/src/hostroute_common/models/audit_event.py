"""Audit event model for operator actions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class AuditEvent(BaseModel):
    """A single auditable operation against the host's proxy configuration."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    host_id: str = "host-01"
    actor: str = ""
    action: str = ""
    target: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    # terminal pipeline state and certbot outcome, for route.configure
    route_state: str | None = None
    certificate_issued: bool | None = None
    result: str = "success"
    error: str | None = None
    duration_ms: int | None = None

    def to_jsonl(self) -> str:
        return self.model_dump_json()
