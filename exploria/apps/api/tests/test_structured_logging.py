"""Structured JSON logging with request context and sanitization."""

import json
import logging
from io import StringIO

import pytest

from exploria_api.context import portal_type_var, request_id_var, user_refid_var
from exploria_api.utils.logging import JSONFormatter
from exploria_api.utils.sanitize import sanitize_obj, sanitize_str


@pytest.fixture
def json_logger():
    logger = logging.getLogger("test_exploria_json_logger")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    request_id_var.set("")
    user_refid_var.set("")
    portal_type_var.set("")
    try:
        yield logger, stream
    finally:
        logger.handlers.clear()
        request_id_var.set("")
        user_refid_var.set("")
        portal_type_var.set("")


def _last_record(stream: StringIO) -> dict:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_formatter_includes_context_vars(json_logger) -> None:
    logger, stream = json_logger
    request_id_var.set("req_123")
    user_refid_var.set("USR-01012024000000-AAA")
    portal_type_var.set("admin")

    logger.info("auth.portal_login.success")

    log_data = _last_record(stream)
    assert log_data["message"] == "auth.portal_login.success"
    assert log_data["request_id"] == "req_123"
    assert log_data["user_refid"] == "USR-01012024000000-AAA"
    assert log_data["portal_type"] == "admin"
    assert log_data["level"] == "INFO"


def test_json_formatter_handles_missing_context(json_logger) -> None:
    logger, stream = json_logger

    logger.info("no context")

    log_data = _last_record(stream)
    assert "request_id" not in log_data
    assert "user_refid" not in log_data
    assert "portal_type" not in log_data


def test_extra_fields_are_merged_and_redacted(json_logger) -> None:
    logger, stream = json_logger

    logger.info(
        "auth.register.success",
        extra={
            "registration_source": "ios",
            "email": "a@x.com",
            "id_token": "eyJhbGciOi",
            "headers": {"Authorization": "Bearer abc.def"},
        },
    )

    log_data = _last_record(stream)
    assert log_data["registration_source"] == "ios"
    assert log_data["email"] == "[REDACTED]"
    assert log_data["id_token"] == "[REDACTED]"
    assert log_data["headers"]["Authorization"] == "[REDACTED]"
    assert "a@x.com" not in stream.getvalue()


def test_exception_traceback_is_sanitized(json_logger) -> None:
    logger, stream = json_logger

    try:
        raise RuntimeError("failed with Bearer secret-token-value")
    except RuntimeError:
        logger.error("http.unhandled_exception", exc_info=True)

    log_data = _last_record(stream)
    assert "RuntimeError" in log_data["exc_info"]
    assert "secret-token-value" not in log_data["exc_info"]


class TestSanitize:
    def test_bearer_tokens_redacted(self):
        assert sanitize_str("Authorization: Bearer abc123") == "Authorization: [REDACTED]"

    def test_long_strings_truncated_with_hash(self):
        result = sanitize_str("x" * 5000)

        assert result.startswith("[TRUNCATED len=5000 sha256=")

    def test_nested_sensitive_keys(self):
        result = sanitize_obj({"device": {"os_name": "iOS"}, "profile": {"mobile_number": "+62811"}})

        assert result == {"device": {"os_name": "iOS"}, "profile": {"mobile_number": "[REDACTED]"}}

    def test_gps_is_redacted(self):
        assert sanitize_obj({"gps_live": [106.8, -6.2]}) == {"gps_live": "[REDACTED]"}


def test_request_completion_is_logged(client, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="exploria_api.main"):
        client.get("/health")

    completed = [r for r in caplog.records if r.getMessage() == "http.request.completed"]
    assert completed
    assert completed[-1].status_code == 200
    assert completed[-1].path == "/health"
