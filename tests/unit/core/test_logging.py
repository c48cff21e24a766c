"""
Tests for logging middleware.
Tests PII masking, header masking, request-id propagation and the JSON formatter.
"""

import json
import logging
import sys

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_client_ip,
    is_sensitive_field,
    mask_headers,
    mask_pii,
    mask_sensitive_data,
    should_log_request,
)


class TestSensitiveFieldDetection:
    """Test sensitive field name detection."""

    @pytest.mark.parametrize("field_name,expected", [
        ("password", True),
        ("new_password", True),
        ("access_token", True),
        ("client_secret", True),
        ("Authorization", True),
        ("cookie", True),
        ("session_id", True),
        ("email", False),
        ("student_id", False),
        ("marks", False),
        ("scheduled_at", False),
    ])
    def test_sensitive_field_patterns(self, field_name, expected):
        assert is_sensitive_field(field_name) == expected


class TestDataMasking:
    """Test recursive masking of payloads."""

    def test_nested_payload(self):
        data = {
            "identifier": "student@example.com",
            "password": "Secret123",
            "profile": {"phone": "555-123-4567", "token": "abc"},
            "slots": ["2030-01-01T10:00:00Z"],
        }
        masked = mask_sensitive_data(data)

        assert masked["identifier"] == "[EMAIL]"
        assert masked["password"] == "[REDACTED]"
        assert masked["profile"]["phone"] == "[PHONE]"
        assert masked["profile"]["token"] == "[REDACTED]"
        assert masked["slots"] == ["2030-01-01T10:00:00Z"]

    def test_max_depth(self):
        data = current = {}
        for _ in range(15):
            current["child"] = {}
            current = current["child"]
        masked = mask_sensitive_data(data, max_depth=3)

        assert "[MAX_DEPTH_EXCEEDED]" in json.dumps(masked)

    def test_non_string_values_untouched(self):
        assert mask_sensitive_data({"marks": 85, "completed": True}) == {"marks": 85, "completed": True}

    def test_mask_pii_in_sentence(self):
        assert mask_pii("Invite sent to a@b.io") == "Invite sent to [EMAIL]"


class TestHeaderMasking:
    def test_authorization_keeps_scheme(self):
        masked = mask_headers({"Authorization": "Bearer abc.def", "Accept": "application/json"})
        assert masked["Authorization"] == "Bearer [REDACTED]"
        assert masked["Accept"] == "application/json"

    def test_cookie_redacted(self):
        assert mask_headers({"cookie": "access_token=abc"})["cookie"] == "[REDACTED]"


class TestRequestFiltering:
    @pytest.mark.parametrize("path,expected", [
        ("/health", False),
        ("/ready", False),
        ("/api/v1/events", True),
    ])
    def test_should_log_request(self, path, expected):
        assert should_log_request(path) == expected


class TestClientIp:
    def _request(self, headers=None, client=("203.0.113.7", 5000)):
        scope = {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.encode(), v.encode()) for k, v in (headers or {}).items()],
            "client": client,
        }
        return Request(scope)

    def test_last_octet_masked(self):
        assert get_client_ip(self._request()) == "203.0.113.xxx"

    def test_forwarded_for_preferred(self):
        request = self._request({"x-forwarded-for": "198.51.100.20, 10.0.0.1"})
        assert get_client_ip(request) == "198.51.100.xxx"

    def test_ipv6_unknown(self):
        assert get_client_ip(self._request(client=("::1", 5000))) == "unknown"


class TestStructuredLoggingMiddleware:
    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(StructuredLoggingMiddleware)

        @app.get("/api/v1/things")
        async def things(request: Request):
            request.state.user_id = 7
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return TestClient(app)

    def test_request_id_generated(self, client):
        response = client.get("/api/v1/things")
        assert response.status_code == 200
        assert response.headers["x-request-id"]

    def test_request_id_propagated(self, client):
        response = client.get("/api/v1/things", headers={"x-request-id": "abc-123"})
        assert response.headers["x-request-id"] == "abc-123"

    def test_completion_logged_with_user(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            client.get("/api/v1/things?token=secret")

        entries = [json.loads(r.getMessage()) for r in caplog.records if r.getMessage().startswith("{")]
        started = next(e for e in entries if e["event"] == "request_started")
        completed = next(e for e in entries if e["event"] == "request_completed")

        assert started["query_params"]["token"] == "[REDACTED]"
        assert completed["status_code"] == 200
        assert completed["user_id"] == 7

    def test_health_not_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = client.get("/health")

        assert response.headers["x-request-id"]
        assert not [r for r in caplog.records if "request_started" in r.getMessage()]


class TestStructuredFormatter:
    def test_json_output(self):
        record = logging.LogRecord("mockround", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        record.request_id = "req-9"
        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-9"

    def test_exception_included(self):
        try:
            raise ValueError("bad slot")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("mockround", logging.ERROR, __file__, 1, "failed", (), exc_info)
        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad slot"
