"""
Tests for health probes, response headers and the app factory wiring.
"""

import json
import logging

import pytest

from app.config import ProductionConfig, _database_url
from app.middleware.logging_config import JSONFormatter
from app.middleware.rate_limiter import tenant_rate_limit_key


class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_checks_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["redis"]["status"] == "skipped"


class TestResponseHeaders:
    def test_security_headers(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in res.headers["Content-Security-Policy"]

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "req-123"})
        assert res.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.headers["X-Request-ID"]

    def test_unknown_route(self, client):
        res = client.get("/api/v1/unknown")
        assert res.status_code == 404
        assert res.get_json()["success"] is False


class TestRateLimitKey:
    def test_keyed_by_tenant(self, app):
        with app.test_request_context(headers={"X-Company-Id": "t-42"}):
            assert tenant_rate_limit_key() == "tenant:t-42"

    def test_falls_back_to_ip(self, app):
        with app.test_request_context(environ_base={"REMOTE_ADDR": "10.0.0.9"}):
            assert tenant_rate_limit_key() == "10.0.0.9"


class TestJSONLogging:
    def test_context_fields_included(self):
        record = logging.LogRecord(
            "app.test", logging.INFO, __file__, 10, "Status changed", None, None,
        )
        record.request_id = "abc"
        record.tenant_id = "t-1"
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Status changed"
        assert entry["request_id"] == "abc"
        assert entry["tenant_id"] == "t-1"
        assert "user_id" not in entry


class TestProductionConfig:
    def test_refuses_to_start_without_database_url(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", None)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            ProductionConfig()

    def test_refuses_to_start_without_secret_key(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "postgresql://x/y")
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            ProductionConfig()

    def test_legacy_postgres_scheme_is_rewritten(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://ops@db/construction")
        assert _database_url() == "postgresql://ops@db/construction"
