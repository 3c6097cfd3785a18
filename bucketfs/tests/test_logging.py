"""
Unit Tests: Structured Logging

Tests:
    - JSON output shape and field order
    - Operation scopes and generated operation ids
    - Keyword fields and bound loggers
"""

import io
import json
import logging
import sys

import pytest

from bucketfs.observability.logging import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    current_context,
    new_operation_id,
    operation_scope,
    setup_logging,
)


@pytest.fixture
def json_stream():
    stream = io.StringIO()
    setup_logging(LogLevel.DEBUG, json_output=True, stream=stream)
    yield stream
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


def _lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestJsonOutput:
    """Tests for JsonFormatter through the root handler."""

    def test_fields(self, json_stream):
        StructuredLogger("bucketfs.test").info("Flush completed", key="s3fs-public/a", size_bytes=3)
        (entry,) = _lines(json_stream)
        assert entry["message"] == "Flush completed"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "bucketfs.test"
        assert entry["key"] == "s3fs-public/a"
        assert entry["size_bytes"] == 3
        assert "@timestamp" in entry

    def test_plain_logger_extras(self, json_stream):
        logging.getLogger("bucketfs.plain").info("Directory created", extra={"uri": "public://d"})
        (entry,) = _lines(json_stream)
        assert entry["uri"] == "public://d"

    def test_leading_fields_first(self, json_stream):
        with operation_scope(uri="public://a", operation_id="op-1"):
            StructuredLogger("bucketfs.test").info("x", size_bytes=1, key="k")
        (entry,) = _lines(json_stream)
        keys = list(entry)
        assert keys[4:7] == ["operation_id", "uri", "key"]

    def test_sdk_loggers_quieted(self, json_stream):
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_exception_serialized(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        entry = json.loads(JsonFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestOperationScope:
    """Tests for scope-bound fields."""

    def test_fields_only_inside_scope(self, json_stream):
        logger = StructuredLogger("bucketfs.test")
        with operation_scope(uri="public://a") as op_id:
            assert current_context()["uri"] == "public://a"
            logger.warning("inside")
        logger.warning("outside")

        inside, outside = _lines(json_stream)
        assert inside["uri"] == "public://a"
        assert inside["operation_id"] == op_id
        assert "uri" not in outside
        assert "operation_id" not in outside

    def test_nested_scope_keeps_operation_id(self):
        with operation_scope(uri="public://a") as outer:
            with operation_scope(key="k") as inner:
                assert inner == outer
                assert current_context()["uri"] == "public://a"
        assert current_context() == {}

    def test_operation_ids_unique(self):
        assert new_operation_id() != new_operation_id()
        assert len(new_operation_id()) == 16


class TestStructuredLogger:
    """Tests for bound loggers."""

    def test_bind(self, json_stream):
        child = StructuredLogger("bucketfs.test").bind(bucket="media")
        child.error("boom", key="k")
        (entry,) = _lines(json_stream)
        assert entry["bucket"] == "media"
        assert entry["key"] == "k"

    def test_level_filtering(self, json_stream):
        StructuredLogger("bucketfs.quiet", level=LogLevel.ERROR).info("hidden")
        assert _lines(json_stream) == []
