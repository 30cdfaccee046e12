"""Input validation for route parameters, and the pure RouteSpec builder.

Every check returns a tri-state ``ValidationResult``. Whether the operator is
asked to override is decided by ``ValidationResult.resolution`` alone:

* ``VALID``          -> accept
* ``INVALID_SOFT``   -> ask the operator ("continue anyway?")
* ``INVALID_HARD``   -> reject, no override
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hostroute_common import BackendProtocol, RouteSpec

from hostroute.errors import RouteValidationError

_LABEL = r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
_DOMAIN_RE = re.compile(rf"^(?:{_LABEL}\.)+[a-z]{{2,63}}$")
# Characters that would break out of a server_name directive
_UNSAFE_DOMAIN_RE = re.compile(r"[\s;{}'\"$\\#/]")
_PORT_RE = re.compile(r"^[0-9]+$")

MAX_DOMAIN_LENGTH = 253
MAX_PORT = 65535


class ValidationStatus(str, Enum):
    VALID = "valid"
    INVALID_SOFT = "invalid_soft"
    INVALID_HARD = "invalid_hard"


class Resolution(str, Enum):
    ACCEPT = "accept"
    ASK_OPERATOR = "ask_operator"
    REJECT = "reject"


_RESOLUTIONS = {
    ValidationStatus.VALID: Resolution.ACCEPT,
    ValidationStatus.INVALID_SOFT: Resolution.ASK_OPERATOR,
    ValidationStatus.INVALID_HARD: Resolution.REJECT,
}


@dataclass(frozen=True)
class ValidationResult:
    field: str
    status: ValidationStatus
    value: Any = None
    reason: str = ""

    @property
    def resolution(self) -> Resolution:
        return _RESOLUTIONS[self.status]

    @property
    def ok(self) -> bool:
        return self.status is ValidationStatus.VALID

    def to_error(self) -> RouteValidationError:
        return RouteValidationError(f"Invalid {self.field}: {self.reason}", field=self.field)


def validate_domain(raw: str | None) -> ValidationResult:
    """Check a hostname against a conservative DNS grammar.

    Grammar failures are soft; empty names and names that cannot be written
    into an nginx directive are hard.
    """
    domain = (raw or "").strip().lower()
    if not domain:
        return ValidationResult("domain", ValidationStatus.INVALID_HARD, domain, "domain is empty")
    if _UNSAFE_DOMAIN_RE.search(domain):
        return ValidationResult(
            "domain", ValidationStatus.INVALID_HARD, domain,
            f"{domain!r} contains whitespace or characters not allowed in server_name",
        )
    if len(domain) > MAX_DOMAIN_LENGTH or not _DOMAIN_RE.match(domain):
        return ValidationResult(
            "domain", ValidationStatus.INVALID_SOFT, domain,
            f"Domain name format might be invalid: {domain}",
        )
    return ValidationResult("domain", ValidationStatus.VALID, domain)


def validate_port(raw: str | int | None) -> ValidationResult:
    """Backend port must be a decimal integer in [1, 65535]. Never overridable."""
    text = str(raw).strip() if raw is not None else ""
    if not _PORT_RE.match(text):
        return ValidationResult("port", ValidationStatus.INVALID_HARD, text, f"invalid port number: {text!r}")
    if len(text.lstrip("0")) > len(str(MAX_PORT)):
        return ValidationResult("port", ValidationStatus.INVALID_HARD, text, "invalid port number: out of range")
    port = int(text)
    if port < 1 or port > MAX_PORT:
        return ValidationResult("port", ValidationStatus.INVALID_HARD, port, f"invalid port number: {port}")
    return ValidationResult("port", ValidationStatus.VALID, port)


def parse_protocol(raw: str | None) -> BackendProtocol:
    """Map a positional argument or menu answer to a protocol.

    ``https`` and menu choice ``2`` select HTTPS; everything else is HTTP.
    """
    choice = (raw or "").strip().lower()
    if choice in ("https", "2"):
        return BackendProtocol.HTTPS
    return BackendProtocol.HTTP


def parse_yes_no(raw: str | None) -> bool:
    """Only an explicit yes counts; free text is treated as no."""
    return (raw or "").strip().lower() in ("y", "yes")


def build_route_spec(
    domain: str,
    port: int,
    protocol: BackendProtocol,
    *,
    enable_ipv6: bool = False,
    enable_upgrade: bool = False,
) -> RouteSpec:
    """Assemble an immutable RouteSpec from already-validated fields."""
    return RouteSpec(
        domain=domain,
        backend_port=port,
        backend_protocol=protocol,
        enable_ipv6=enable_ipv6,
        enable_upgrade=enable_upgrade,
    )
