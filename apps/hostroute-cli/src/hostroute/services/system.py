"""Subprocess wrappers and host-level checks (root, binaries, ports)."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass

from hostroute.errors import CommandTimeoutError, ExternalToolMissingError, PrivilegeError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        return (self.stderr or self.stdout).strip()


def run(cmd: list[str], *, timeout: float | None = None) -> CommandResult:
    """Run a command to completion, never raising on a non-zero exit.

    A hang past ``timeout`` is a CommandTimeoutError, distinct from failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(f"Command timed out after {timeout:g}s: {' '.join(cmd)}") from exc
    except FileNotFoundError as exc:
        raise ExternalToolMissingError(f"Command not found: {cmd[0]}") from exc
    return CommandResult(proc.returncode, proc.stdout, proc.stderr)


def require_root() -> None:
    if os.geteuid() != 0:
        raise PrivilegeError("Please run this command with sudo or as root")


def require_tool(name: str, hint: str = "") -> str:
    """Return the resolved path of ``name`` or raise ExternalToolMissingError."""
    path = shutil.which(name)
    if path is None:
        raise ExternalToolMissingError(hint or f"{name} is not installed. Please install {name} first.")
    return path


def parse_listening_ports(ss_output: str) -> set[int]:
    """Extract local ports from ``ss -tuln`` output."""
    ports: set[int] = set()
    for line in ss_output.splitlines():
        cols = line.split()
        # Netid State Recv-Q Send-Q Local-Address:Port Peer-Address:Port
        if len(cols) < 5 or cols[0] == "Netid":
            continue
        _, _, port = cols[4].rpartition(":")
        if port.isdigit():
            ports.add(int(port))
    return ports


class HostPorts:
    """The OS port table, via fuser and ss."""

    def __init__(self, *, timeout: float | None = None):
        self.timeout = timeout

    def free(self, port: int) -> bool:
        """Kill whatever holds ``port``/tcp. False if fuser is unavailable."""
        try:
            # fuser exits 1 when nothing was bound; either way the port is free
            run(["fuser", "-k", f"{port}/tcp"], timeout=self.timeout)
        except ExternalToolMissingError:
            return False
        return True

    def listening(self) -> set[int]:
        result = run(["ss", "-tuln"], timeout=self.timeout)
        return parse_listening_ports(result.stdout) if result.ok else set()
