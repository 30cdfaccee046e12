"""JSON registry of configured routes."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from hostroute_common import RouteRecord


class RouteRegistry(BaseModel):
    routes: dict[str, RouteRecord] = Field(default_factory=dict)
    last_updated: datetime | None = None


def load_registry(path: Path) -> RouteRegistry:
    if not path.exists():
        return RouteRegistry()
    return RouteRegistry.model_validate_json(path.read_text())


def save_registry(path: Path, registry: RouteRegistry) -> None:
    registry.last_updated = datetime.now(timezone.utc)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(registry.model_dump_json(indent=2) + "\n")
    tmp.replace(path)


def record_route(path: Path, record: RouteRecord) -> RouteRegistry:
    """Insert or replace the entry for ``record.domain``."""
    registry = load_registry(path)
    registry.routes[record.domain] = record
    save_registry(path, registry)
    return registry


def set_enabled(path: Path, domain: str, enabled: bool) -> RouteRecord | None:
    """Flip the enabled flag of a recorded route. None if the domain is unknown."""
    registry = load_registry(path)
    record = registry.routes.get(domain)
    if record is None:
        return None
    updated = record.model_copy(update={"enabled": enabled, "updated_at": datetime.now(timezone.utc)})
    registry.routes[domain] = updated
    save_registry(path, registry)
    return updated
