"""
Tests for middleware modules
"""

import json
import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from orderdesk.middleware.logging import (
    RequestIdFilter,
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_request_id,
    request_id_var,
)
from orderdesk.middleware.tenant import OrgContextMiddleware


def _record(message="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("orderdesk.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """JSON formatter output"""

    def test_basic_fields(self):
        payload = json.loads(StructuredFormatter().format(_record(request_id="req-1")))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "orderdesk.test"
        assert payload["message"] == "hello"
        assert payload["request_id"] == "req-1"

    def test_tenant_and_request_extras(self):
        payload = json.loads(
            StructuredFormatter().format(_record(organization_id=4, user_id=9, status_code=409, unrelated="x"))
        )

        assert payload["organization_id"] == 4
        assert payload["user_id"] == 9
        assert payload["status_code"] == 409
        assert "unrelated" not in payload


class TestRequestIdFilter:
    def test_copies_context_var(self):
        token = request_id_var.set("abc-123")
        try:
            record = _record()
            assert RequestIdFilter().filter(record) is True
            assert record.request_id == "abc-123"
            assert get_request_id() == "abc-123"
        finally:
            request_id_var.reset(token)


def _app() -> FastAPI:
    app = FastAPI()

    @app.get("/echo")
    async def echo(request: Request):
        return {"claimed": request.state.claimed_org_id}

    app.add_middleware(OrgContextMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    return app


class TestOrgContextMiddleware:
    def test_header_copied_unvalidated(self):
        client = TestClient(_app())

        assert client.get("/echo", headers={"X-Organization-ID": "not-a-number"}).json() == {"claimed": "not-a-number"}

    def test_missing_header_is_none(self):
        client = TestClient(_app())

        assert client.get("/echo").json() == {"claimed": None}


class TestStructuredLoggingMiddleware:
    def test_generates_request_id(self):
        response = TestClient(_app()).get("/echo")

        assert len(response.headers["X-Request-ID"]) == 36

    def test_propagates_incoming_request_id(self):
        response = TestClient(_app()).get("/echo", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"

    def test_access_log_line(self, caplog):
        with caplog.at_level(logging.INFO, logger="orderdesk.access"):
            TestClient(_app()).get("/echo")

        records = [r for r in caplog.records if r.name == "orderdesk.access"]
        assert len(records) == 1
        assert records[0].status_code == 200
        assert records[0].path == "/echo"
