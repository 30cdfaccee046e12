"""Reconcile per-domain files under sites-available / sites-enabled.

This module is the only place that writes, backs up, links or unlinks a
domain's vhost artifacts.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

from hostroute_common import BACKUP_TIMESTAMP_FORMAT

from hostroute.errors import StateConflictError

Clock = Callable[[], datetime]


class ExistingConfigChoice(str, Enum):
    """Operator menu shown when a vhost file already exists."""

    BACKUP = "1"
    OVERWRITE = "2"
    VIEW = "3"
    ABORT = "4"


EXISTING_CONFIG_MENU = (
    (ExistingConfigChoice.BACKUP, "Backup existing and create new (recommended)"),
    (ExistingConfigChoice.OVERWRITE, "Overwrite existing configuration"),
    (ExistingConfigChoice.VIEW, "View existing configuration and exit"),
    (ExistingConfigChoice.ABORT, "Exit without changes"),
)


class LinkAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    REPAIRED = "repaired"
    REPLACED_FILE = "replaced_file"


@dataclass(frozen=True)
class WriteResult:
    """``existing_content`` is the file as it was before this write, if there was one."""

    written: bool
    backup_path: Path | None = None
    existing_content: str | None = None


@dataclass(frozen=True)
class LinkResult:
    action: LinkAction
    backup_path: Path | None = None
    previous_target: Path | None = None


def parse_existing_choice(raw: str | None) -> ExistingConfigChoice:
    """Map menu input to a choice. Anything outside 1-4 is an error."""
    try:
        return ExistingConfigChoice((raw or "").strip())
    except ValueError:
        raise StateConflictError(f"Invalid choice: {raw!r}") from None


def backup_path_for(path: Path, now: datetime) -> Path:
    return path.with_name(f"{path.name}.backup.{now.strftime(BACKUP_TIMESTAMP_FORMAT)}")


def write_site_config(
    path: Path,
    content: str,
    choice: ExistingConfigChoice | None = None,
    *,
    now: Clock = datetime.now,
) -> WriteResult:
    """Write a vhost file, honouring the operator's choice if one already exists."""
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return WriteResult(written=True)

    if choice is None:
        raise StateConflictError(f"Configuration file already exists: {path}")

    if choice is ExistingConfigChoice.VIEW:
        return WriteResult(written=False, existing_content=path.read_text())
    if choice is ExistingConfigChoice.ABORT:
        return WriteResult(written=False)

    previous = path.read_text()
    backup = None
    if choice is ExistingConfigChoice.BACKUP:
        backup = backup_path_for(path, now())
        shutil.copy2(path, backup)
    path.write_text(content)
    return WriteResult(written=True, backup_path=backup, existing_content=previous)


def restore_site_config(path: Path, result: WriteResult) -> bool:
    """Undo ``write_site_config``. A freshly created file is left in place."""
    if not result.written or result.existing_content is None:
        return False
    if result.backup_path is not None and result.backup_path.is_file():
        shutil.copy2(result.backup_path, path)
    else:
        path.write_text(result.existing_content)
    return True


def enable_site(config_path: Path, link_path: Path, *, now: Clock = datetime.now) -> LinkResult:
    """Point the activation link at ``config_path``.

    Valid link: replaced. Broken link: removed and recreated. Regular file:
    moved aside with a timestamped suffix, then linked.
    """
    action = LinkAction.CREATED
    backup = None
    previous = None

    if link_path.is_symlink():
        if link_path.exists():
            action = LinkAction.UPDATED
            previous = Path(os.readlink(link_path))
        else:
            action = LinkAction.REPAIRED
        link_path.unlink()
    elif link_path.is_dir():
        raise StateConflictError(f"A directory occupies the activation path: {link_path}")
    elif link_path.exists():
        backup = backup_path_for(link_path, now())
        os.replace(link_path, backup)
        action = LinkAction.REPLACED_FILE

    result = LinkResult(action=action, backup_path=backup, previous_target=previous)
    try:
        link_path.parent.mkdir(parents=True, exist_ok=True)
        link_path.symlink_to(config_path)
    except OSError:
        restore_site_link(link_path, result)
        raise
    return result


def restore_site_link(link_path: Path, result: LinkResult) -> None:
    """Undo ``enable_site``: put back the valid link or moved-aside file it replaced.

    A broken link that was repaired is not recreated.
    """
    if link_path.is_symlink():
        link_path.unlink()
    if result.previous_target is not None:
        link_path.symlink_to(result.previous_target)
    elif result.backup_path is not None and result.backup_path.exists():
        os.replace(result.backup_path, link_path)


def disable_site(link_path: Path) -> bool:
    """Remove the activation link. Returns False if there was nothing to remove."""
    if link_path.is_symlink():
        link_path.unlink()
        return True
    if link_path.exists():
        raise StateConflictError(f"Not a symbolic link, refusing to remove: {link_path}")
    return False


def is_enabled(config_path: Path, link_path: Path) -> bool:
    return link_path.is_symlink() and link_path.exists() and link_path.resolve() == config_path.resolve()
