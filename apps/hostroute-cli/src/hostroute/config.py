"""CLI configuration: a singleton HostRouteConfig resolved at startup."""

from __future__ import annotations

from functools import lru_cache

from hostroute_common import HostRouteConfig


@lru_cache(maxsize=1)
def get_config() -> HostRouteConfig:
    """Return the global HostRouteConfig (resolved once, cached)."""
    return HostRouteConfig()
