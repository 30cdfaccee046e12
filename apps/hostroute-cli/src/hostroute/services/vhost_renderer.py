"""Jinja2-based NGINX vhost config renderer.

Rendering is a pure function of the RouteSpec (and the certificate root): no
timestamps, no filesystem access beyond loading the template.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from hostroute_common import CERTS_ROOT, CertificatePaths, RouteSpec

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

GZIP_TYPES = (
    "text/plain",
    "text/css",
    "text/xml",
    "text/javascript",
    "application/json",
    "application/javascript",
    "application/x-javascript",
    "application/xml",
    "application/rss+xml",
    "application/atom+xml",
    "application/rdf+xml",
)

UPGRADE_TIMEOUT = "3600s"


@lru_cache(maxsize=1)
def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=select_autoescape([]),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_vhost(route: RouteSpec, *, certs_root: Path = CERTS_ROOT) -> str:
    """Render the HTTP->HTTPS redirect block and the TLS proxy block for a route."""
    template = _get_env().get_template("vhost.conf.j2")
    return template.render(
        route=route,
        cert=CertificatePaths.for_domain(certs_root, route.domain),
        gzip_types=GZIP_TYPES,
        upgrade_timeout=UPGRADE_TIMEOUT,
    )
