"""
Tests for core helpers: structured logging, tokens and the error types.
"""
import json
import logging
from datetime import timedelta

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from core.logging import JSONFormatter
from core.security import create_access_token, decode_access_token, get_user_id_from_token


def test_json_formatter_merges_extra_fields():
    record = logging.LogRecord("ironpath.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
    record.extra_fields = {"user_id": "u-1", "count": 2}

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["user_id"] == "u-1"
    assert data["count"] == 2


def test_token_round_trip():
    token = create_access_token({"sub": "abc"})
    assert decode_access_token(token)["sub"] == "abc"
    assert get_user_id_from_token(token) == "abc"


def test_expired_token_rejected():
    token = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-5))
    assert decode_access_token(token) is None
    assert get_user_id_from_token("garbage") is None


def test_exception_codes():
    assert NotFoundError("Feedback", "x").status_code == 404
    assert ValidationError("bad").status_code == 400
    assert ValidationError("bad", field="note").error_code == "VALIDATION_ERROR_NOTE"
    assert ConflictError("again").error_code == "CONFLICT"
    assert ForbiddenError().error_code == "FORBIDDEN"


def test_unauthorized_asks_for_bearer_token():
    error = UnauthorizedError()

    assert error.status_code == 401
    assert error.error_code == "UNAUTHORIZED"
    assert error.headers == {"WWW-Authenticate": "Bearer"}
