"""
Logging utility tests.
"""

import json
import logging
import sys

from collections.abc import Generator

import pytest

from app.utils.logger import (
    THIRD_PARTY_LOGGERS,
    JSONFormatter,
    StandardFormatter,
    add_log_context,
    setup_logging,
)


def make_record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_basic_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "app.test"
        assert entry["message"] == "hello world"
        assert "timestamp" in entry
        assert "source" not in entry

    def test_extra_fields(self) -> None:
        record = make_record(video_id="abc", size_bytes=42)

        entry = json.loads(JSONFormatter().format(record))

        assert entry["extra"] == {"video_id": "abc", "size_bytes": 42}

    def test_exception_block(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "app.test", logging.ERROR, __file__, 10, "failed", (), sys.exc_info()
            )

        entry = json.loads(JSONFormatter().format(record))

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "boom"
        assert "Traceback" in entry["exception"]["traceback"]

    def test_source_location(self) -> None:
        entry = json.loads(JSONFormatter(include_source_location=True).format(make_record()))

        assert entry["source"]["lineno"] == 10

    def test_unserializable_extra_falls_back_to_str(self) -> None:
        entry = json.loads(JSONFormatter().format(make_record(payload=object)))

        assert entry["extra"]["payload"] == str(object)


def test_standard_formatter() -> None:
    line = StandardFormatter().format(make_record())

    assert "INFO" in line
    assert "app.test: hello world" in line


class TestSetupLogging:
    def test_configures_root_logger(self, restore_logging: None) -> None:
        setup_logging(log_level="debug", json_logs=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_caps_third_party_loggers(self, restore_logging: None) -> None:
        setup_logging(log_level="debug")

        for name in THIRD_PARTY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_uvicorn_does_not_propagate(self, restore_logging: None) -> None:
        setup_logging()

        assert logging.getLogger("uvicorn.access").propagate is False
        assert isinstance(logging.getLogger("uvicorn").handlers[0].formatter, StandardFormatter)


class TestAddLogContext:
    def test_context_is_added(self, caplog: pytest.LogCaptureFixture) -> None:
        ctx_logger = add_log_context(logging.getLogger("app.test.context"), video_id="v1")

        with caplog.at_level(logging.INFO, logger="app.test.context"):
            ctx_logger.info("stored")

        assert caplog.records[-1].video_id == "v1"

    def test_call_extra_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        ctx_logger = add_log_context(logging.getLogger("app.test.context"), video_id="v1")

        with caplog.at_level(logging.INFO, logger="app.test.context"):
            ctx_logger.info("stored", extra={"video_id": "override", "reason": "x"})

        record = caplog.records[-1]
        assert record.video_id == "override"
        assert record.reason == "x"
