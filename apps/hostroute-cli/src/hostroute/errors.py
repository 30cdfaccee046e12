"""Custom exceptions for the hostroute CLI."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Closed set of failure categories callers can match on."""

    VALIDATION = "validation"
    TOOL_MISSING = "tool_missing"
    PERMISSION = "permission"
    CERTIFICATE = "certificate"
    CONFIG_TEST = "config_test"
    STATE_CONFLICT = "state_conflict"
    PROXY_COMMAND = "proxy_command"
    TIMEOUT = "timeout"


class HostRouteError(Exception):
    """Base exception for all hostroute operations."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str, *, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class RouteValidationError(HostRouteError):
    """An input field failed validation with no operator override."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, field: str, exit_code: int = 1):
        super().__init__(message, exit_code=exit_code)
        self.field = field


class ExternalToolMissingError(HostRouteError):
    """A required binary (nginx, certbot, ...) is not installed."""

    kind = ErrorKind.TOOL_MISSING


class PrivilegeError(HostRouteError):
    """The operation needs root."""

    kind = ErrorKind.PERMISSION


class CertificateError(HostRouteError):
    """Certbot failed to issue a certificate."""

    kind = ErrorKind.CERTIFICATE


class ConfigTestError(HostRouteError):
    """nginx -t rejected the configuration set."""

    kind = ErrorKind.CONFIG_TEST


class StateConflictError(HostRouteError):
    """Existing on-disk state needs an explicit decision, or cannot be reconciled."""

    kind = ErrorKind.STATE_CONFLICT


class ProxyCommandError(HostRouteError):
    """A proxy service operation (start, reload, ...) failed."""

    kind = ErrorKind.PROXY_COMMAND


class CommandTimeoutError(HostRouteError):
    """An external command did not finish within its timeout."""

    kind = ErrorKind.TIMEOUT
