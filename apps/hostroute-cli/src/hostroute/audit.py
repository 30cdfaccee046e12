"""Dual-write audit logger: JSONL file + SQLite database."""

from __future__ import annotations

import getpass
import json
import os
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from hostroute_common import AuditEvent, HostRouteConfig

from hostroute.config import get_config

_SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    host_id TEXT NOT NULL,
    actor TEXT NOT NULL,
    action TEXT NOT NULL,
    target TEXT NOT NULL DEFAULT '',
    params TEXT NOT NULL DEFAULT '{}',
    route_state TEXT,
    certificate_issued INTEGER,
    result TEXT NOT NULL DEFAULT 'success',
    error TEXT,
    duration_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_logs(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_logs(action);
CREATE INDEX IF NOT EXISTS idx_audit_target ON audit_logs(target);
"""


def _ensure_dirs(cfg: HostRouteConfig) -> None:
    cfg.audit_jsonl_path.parent.mkdir(parents=True, exist_ok=True)
    cfg.audit_db_path.parent.mkdir(parents=True, exist_ok=True)


def _get_actor() -> str:
    # sudo keeps the invoking user here
    return os.environ.get("HOSTROUTE_ACTOR") or os.environ.get("SUDO_USER") or getpass.getuser()


def _init_db(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.executescript(_SCHEMA)
    return conn


def _write_jsonl(path: Path, event: AuditEvent) -> None:
    with open(path, "a") as f:
        f.write(event.to_jsonl() + "\n")


def _write_sqlite(db_path: Path, event: AuditEvent) -> None:
    conn = _init_db(db_path)
    try:
        conn.execute(
            """INSERT INTO audit_logs
               (timestamp, host_id, actor, action, target, params,
                route_state, certificate_issued, result, error, duration_ms)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.timestamp.isoformat(),
                event.host_id,
                event.actor,
                event.action,
                event.target,
                event.model_dump_json(include={"params"}),
                event.route_state,
                event.certificate_issued,
                event.result,
                event.error,
                event.duration_ms,
            ),
        )
        conn.commit()
    finally:
        conn.close()


def log_event(event: AuditEvent) -> None:
    """Write an audit event to both JSONL and SQLite."""
    cfg = get_config()
    _ensure_dirs(cfg)
    _write_jsonl(cfg.audit_jsonl_path, event)
    _write_sqlite(cfg.audit_db_path, event)


@contextmanager
def audit(action: str, target: str = "", **params: Any) -> Generator[AuditEvent, None, None]:
    """Context manager that records timing and success/failure."""
    cfg = get_config()
    event = AuditEvent(
        host_id=cfg.host_id,
        actor=_get_actor(),
        action=action,
        target=target,
        params=params,
    )
    start = time.monotonic()
    try:
        yield event
        event.result = "success"
    except Exception as exc:
        event.result = "failure"
        event.error = str(exc)
        raise
    finally:
        event.duration_ms = int((time.monotonic() - start) * 1000)
        log_event(event)


def route_history(db_path: Path, target: str, limit: int = 20) -> list[AuditEvent]:
    """Most recent audit events for one domain, newest first."""
    if not db_path.exists():
        return []
    conn = _init_db(db_path)
    try:
        rows = conn.execute(
            """SELECT timestamp, host_id, actor, action, target, params,
                      route_state, certificate_issued, result, error, duration_ms
               FROM audit_logs WHERE target = ? ORDER BY id DESC LIMIT ?""",
            (target, limit),
        ).fetchall()
    finally:
        conn.close()
    return [
        AuditEvent(
            timestamp=row[0],
            host_id=row[1],
            actor=row[2],
            action=row[3],
            target=row[4],
            params=json.loads(row[5]).get("params", {}),
            route_state=row[6],
            certificate_issued=None if row[7] is None else bool(row[7]),
            result=row[8],
            error=row[9],
            duration_ms=row[10],
        )
        for row in rows
    ]
