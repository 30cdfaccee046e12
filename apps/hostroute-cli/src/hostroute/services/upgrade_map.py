"""Ensure the global ``$connection_upgrade`` map exists exactly once in nginx.conf."""

from __future__ import annotations

import re
from pathlib import Path

from hostroute.errors import StateConflictError

UPGRADE_MAP_BLOCK = (
    "\n"
    "    # WebSocket and SSE support\n"
    "    map $http_upgrade $connection_upgrade {\n"
    "        default upgrade;\n"
    "        '' close;\n"
    "    }\n"
    "\n"
)

_MAP_RE = re.compile(r"^\s*map\s+\$http_upgrade\s+\$connection_upgrade\b", re.MULTILINE)
_HTTP_BLOCK_RE = re.compile(r"^[ \t]*http\s*\{[^\n]*\n", re.MULTILINE)


def has_upgrade_map(text: str) -> bool:
    return _MAP_RE.search(text) is not None


def insert_upgrade_map(text: str) -> str:
    """Return ``text`` with the map block inserted after ``http {``, unless already present."""
    if has_upgrade_map(text):
        return text
    match = _HTTP_BLOCK_RE.search(text)
    if match is None:
        raise StateConflictError("No 'http {' block found; cannot add the connection upgrade map")
    return text[: match.end()] + UPGRADE_MAP_BLOCK + text[match.end():]


def ensure_upgrade_map(nginx_conf: Path) -> bool:
    """Read-modify-write nginx.conf. Returns True if the map was inserted."""
    if not nginx_conf.is_file():
        raise StateConflictError(f"NGINX main configuration not found: {nginx_conf}")
    text = nginx_conf.read_text()
    updated = insert_upgrade_map(text)
    if updated == text:
        return False
    nginx_conf.write_text(updated)
    return True
