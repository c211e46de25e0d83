"""Log output shape: container text lines and JSON lines."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from lms.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="lms.test",
        level=level,
        pathname="progress_service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO


@pytest.mark.parametrize("name", ["uvicorn", "sqlalchemy.engine", "aiosqlite"])
def test_setup_logging_caps_noisy_loggers(name: str) -> None:
    setup_logging("debug")
    assert logging.getLogger(name).level == logging.WARNING


def test_setup_logging_uses_json_formatter_when_asked() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)


def test_container_formatter_location_only_for_warnings() -> None:
    fmt = _ContainerFormatter()
    assert "[progress_service.py:" not in fmt.format(_record(logging.INFO))
    assert "[progress_service.py:42]" in fmt.format(_record(logging.WARNING))


def test_json_formatter_emits_one_object_with_request_context() -> None:
    output = _JsonFormatter().format(
        _record(
            msg="lesson completed",
            request_id="req-1",
            method="POST",
            path="/api/lessons/x/progress",
            status_code=200,
            duration_ms=3.2,
        )
    )
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "lms.test"
    assert parsed["message"] == "lesson completed"
    assert parsed["request_id"] == "req-1"
    assert parsed["status_code"] == 200
    assert parsed["duration_ms"] == 3.2
    assert "\n" not in output


def test_json_formatter_omits_missing_context_fields() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert "request_id" not in parsed
    assert "user_id" not in parsed


def test_json_formatter_includes_exception_text() -> None:
    try:
        raise RuntimeError("db went away")
    except RuntimeError:
        record = _record(logging.ERROR, msg="failed")
        record.exc_info = sys.exc_info()
    parsed = json.loads(_JsonFormatter().format(record))
    assert "RuntimeError: db went away" in parsed["exception"]
