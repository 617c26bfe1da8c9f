"""Unit tests for logging setup."""
import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from logger import JSONFormatter, setup_logging


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg=message, args=(), exc_info=None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record("Search returned 3 results")))

        assert data["level"] == "INFO"
        assert data["logger"] == "services.test"
        assert data["message"] == "Search returned 3 results"
        assert data["timestamp"].endswith("Z")
        assert "exception" not in data

    def test_extra_fields(self):
        data = json.loads(JSONFormatter().format(make_record(chunk_id="doc-chunk-3", latency_ms=12)))

        assert data["chunk_id"] == "doc-chunk-3"
        assert data["latency_ms"] == 12
        assert "pathname" not in data

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]


class TestSetupLogging:
    """Test suite for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_format(self):
        setup_logging("debug", json_format=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_text_format(self):
        setup_logging("WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
