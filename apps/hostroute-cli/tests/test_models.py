"""Tests for shared Pydantic models."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from hostroute_common import AuditEvent, BackendProtocol, CertificatePaths, RouteRecord, RouteSpec


class TestRouteSpec:
    def test_defaults(self):
        spec = RouteSpec(domain="example.com", backend_port=3000)
        assert spec.backend_protocol is BackendProtocol.HTTP
        assert spec.enable_ipv6 is False
        assert spec.enable_upgrade is False

    def test_backend_url(self):
        spec = RouteSpec(domain="example.com", backend_port=8443, backend_protocol=BackendProtocol.HTTPS)
        assert spec.backend_url == "https://localhost:8443"

    def test_is_immutable(self):
        spec = RouteSpec(domain="example.com", backend_port=3000)
        with pytest.raises(ValidationError):
            spec.backend_port = 4000
        assert spec.backend_port == 3000

    def test_reconfiguration_builds_new_spec(self):
        spec = RouteSpec(domain="example.com", backend_port=3000)
        changed = spec.model_copy(update={"enable_upgrade": True})
        assert changed is not spec
        assert spec.enable_upgrade is False
        assert changed.enable_upgrade is True

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_range(self, port: int):
        with pytest.raises(ValidationError):
            RouteSpec(domain="example.com", backend_port=port)

    def test_empty_domain_rejected(self):
        with pytest.raises(ValidationError):
            RouteSpec(domain="", backend_port=80)


class TestCertificatePaths:
    def test_for_domain(self):
        paths = CertificatePaths.for_domain(Path("/etc/letsencrypt/live"), "example.com")
        assert paths.fullchain == Path("/etc/letsencrypt/live/example.com/fullchain.pem")
        assert paths.privkey == Path("/etc/letsencrypt/live/example.com/privkey.pem")


class TestRouteRecord:
    def test_from_spec(self):
        spec = RouteSpec(domain="api.example.com", backend_port=8080, enable_upgrade=True)
        record = RouteRecord.from_spec(spec, Path("/etc/nginx/sites-available/api.example.com"))
        assert record.domain == "api.example.com"
        assert record.backend_url == "http://localhost:8080"
        assert record.enable_upgrade is True
        assert record.enabled is True
        assert record.certificate_issued is True
        assert isinstance(record.updated_at, datetime)

    def test_json_roundtrip_keeps_enum(self):
        record = RouteRecord(
            domain="example.com",
            backend_port=443,
            backend_protocol=BackendProtocol.HTTPS,
            config_path=Path("/etc/nginx/sites-available/example.com"),
        )
        data = json.loads(record.model_dump_json())
        assert data["backend_protocol"] == "https"
        assert RouteRecord.model_validate(data).backend_protocol is BackendProtocol.HTTPS


class TestAuditEvent:
    def test_defaults(self):
        event = AuditEvent(action="route.configure", target="example.com")
        assert event.result == "success"
        assert event.host_id == "host-01"
        assert event.error is None
        assert isinstance(event.timestamp, datetime)

    def test_to_jsonl(self):
        event = AuditEvent(
            action="route.configure",
            target="example.com",
            actor="ops",
            params={"port": "8080"},
        )
        data = json.loads(event.to_jsonl())
        assert data["action"] == "route.configure"
        assert data["params"]["port"] == "8080"
        assert data["result"] == "success"
