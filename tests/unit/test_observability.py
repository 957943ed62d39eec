"""Tests for observability/logger.py and observability/metrics.py"""
import io
import json
import logging
import sys

import pytest

from notionsite.observability import (
    MetricsHook,
    NoopMetricsHook,
    StructuredFormatter,
    get_logger,
    set_level,
)


class TestStructuredFormatter:
    def _get_record(self, msg, exc_info=None, extra_fields=None):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )
        if extra_fields is not None:
            record.extra_fields = extra_fields
        return record

    def test_basic_format(self):
        result = json.loads(StructuredFormatter().format(self._get_record("hello world")))
        assert result["message"] == "hello world"
        assert result["level"] == "INFO"
        assert "ts" in result

    def test_extra_fields_merged(self):
        record = self._get_record("msg", extra_fields={"page_id": "abc", "rounds": 5})
        result = json.loads(StructuredFormatter().format(record))
        assert result["page_id"] == "abc"
        assert result["rounds"] == 5

    def test_exception_info_included(self):
        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()
        result = json.loads(StructuredFormatter().format(self._get_record("boom", exc_info=exc_info)))
        assert "ValueError" in result["exception"]

    def test_non_ascii_kept(self):
        record = self._get_record("页面", extra_fields={"path": "content/post/你好"})
        assert "你好" in StructuredFormatter().format(record)


class TestGetLogger:
    def test_single_line_json(self):
        stream = io.StringIO()
        log = get_logger("test.notionsite.stream", stream=stream)
        log.info("generated", extra={"extra_fields": {"op": "generate"}})
        line = stream.getvalue().strip()
        assert json.loads(line)["op"] == "generate"
        assert "\n" not in line

    def test_idempotent(self):
        first = get_logger("test.notionsite.idempotent")
        second = get_logger("test.notionsite.idempotent")
        assert first is second
        assert len(first.handlers) == 1
        assert first.propagate is False

    def test_string_level(self):
        assert get_logger("test.notionsite.level", level="warning").level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="unknown log level"):
            get_logger("test.notionsite.badlevel", level="chatty")

    def test_set_level_applies_to_configured_loggers(self):
        log = get_logger("test.notionsite.setlevel")
        try:
            set_level("DEBUG")
            assert log.level == logging.DEBUG
        finally:
            set_level("INFO")


class TestMetrics:
    def test_noop_accepts_everything(self):
        hook = NoopMetricsHook()
        hook.increment("x", tags={"a": "b"})
        hook.timing("y", 1.5)
        hook.gauge("z", 3.0)

    def test_noop_satisfies_protocol(self):
        hook: MetricsHook = NoopMetricsHook()
        assert hasattr(hook, "increment")
