"""Unit tests for structured logging and request tracking."""

import json
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from oaServiceControl.core.config_schema import AppConfig
from oaServiceControl.core.logging import (
    JSONFormatter,
    LoggingManager,
    RequestTrackingMiddleware,
    _request_id_var,
    get_request_id,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord("oaServiceControl.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSONFormatter output."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "oaServiceControl.test"
        assert entry["message"] == "hello"
        assert entry["service"]["name"] == "oaServiceControl"

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(make_record(service_name="Spooler", event_type="x")))

        assert entry["extra"]["service_name"] == "Spooler"
        assert entry["extra"]["event_type"] == "x"

    def test_non_serializable_extra_is_stringified(self):
        entry = json.loads(JSONFormatter().format(make_record(obj=object())))
        assert entry["extra"]["obj"].startswith("<object object")

    def test_request_id_included(self):
        token = _request_id_var.set("req-42")
        try:
            entry = json.loads(JSONFormatter().format(make_record()))
        finally:
            _request_id_var.reset(token)

        assert entry["request_id"] == "req-42"


class TestRequestTrackingMiddleware:
    """Test request ID propagation."""

    def build_client(self):
        app = FastAPI()
        app.add_middleware(RequestTrackingMiddleware)

        @app.get("/id")
        async def current_id():
            return {"request_id": get_request_id()}

        return TestClient(app)

    def test_generates_request_id(self):
        response = self.build_client().get("/id")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == response.json()["request_id"]

    def test_keeps_incoming_request_id(self):
        response = self.build_client().get("/id", headers={"X-Request-ID": "abc-123"})

        assert response.json()["request_id"] == "abc-123"
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_context_reset_after_request(self):
        self.build_client().get("/id")
        assert get_request_id() is None


class TestLoggingManager:
    """Test LoggingManager setup."""

    def test_file_logging_uses_json(self, tmp_path):
        log_file = tmp_path / "logs" / "service.log"
        config = AppConfig(_env_file=None, logging={"log_to_file": True, "log_file_path": str(log_file)})
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level

        try:
            LoggingManager(config).setup_logging()
            logging.getLogger("oaServiceControl.test").warning("written", extra={"event_type": "t"})
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert any(line["message"] == "written" for line in lines)
        assert logging.getLogger("paramiko").level == logging.WARNING
