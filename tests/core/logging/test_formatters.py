"""Tests for JSON and console log formatters."""

import json
import logging
import sys

from core.logging.context import record_context, set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter


def _make_record(
    msg="test message",
    level=logging.INFO,
    name="test.logger",
    exc_info=None,
    **extras,
):
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extras.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_formats_basic_json_with_required_fields(self):
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "test.logger"
        assert output["message"] == "test message"
        assert output["ts"].endswith("+00:00")

    def test_includes_log_context(self):
        set_log_context(request_id="r-20260101-120000-abc123", stage="api")
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["request_id"] == "r-20260101-120000-abc123"
        assert output["stage"] == "api"
        assert "worker_id" not in output

    def test_includes_record_context(self):
        with record_context("orders", 1, 7, consumer_group="cg"):
            output = json.loads(JSONFormatter().format(_make_record()))

        assert output["message_topic"] == "orders"
        assert output["message_partition"] == 1
        assert output["message_offset"] == 7
        assert output["message_consumer_group"] == "cg"

    def test_includes_extra_fields(self):
        record = _make_record(topic="orders", key="k-1", success_count=3, delivery_mode="confirmed")
        output = json.loads(JSONFormatter().format(record))

        assert output["topic"] == "orders"
        assert output["key"] == "k-1"
        assert output["success_count"] == 3
        assert output["delivery_mode"] == "confirmed"

    def test_ignores_unknown_extra_fields(self):
        output = json.loads(JSONFormatter().format(_make_record(unrelated="x")))
        assert "unrelated" not in output

    def test_source_location_for_errors_only(self):
        info = json.loads(JSONFormatter().format(_make_record()))
        error = json.loads(JSONFormatter().format(_make_record(level=logging.ERROR)))

        assert "file" not in info
        assert error["file"] == "test.py:42"

    def test_includes_exception(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = _make_record(level=logging.ERROR, exc_info=sys.exc_info())

        output = json.loads(JSONFormatter().format(record))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "bad value"
        assert "Traceback" in output["exception"]["stacktrace"]

    def test_serializes_structured_extras(self):
        record = _make_record(violations=[{"field": "topic", "message": "Topic cannot be blank"}])
        output = json.loads(JSONFormatter().format(record))

        assert output["violations"] == [{"field": "topic", "message": "Topic cannot be blank"}]


class TestConsoleFormatter:

    def _formatter(self):
        return ConsoleFormatter(use_colors=False)

    def test_basic_format(self):
        output = self._formatter().format(_make_record())
        assert " - INFO - test message" in output

    def test_includes_stage(self):
        set_log_context(stage="listener")
        output = self._formatter().format(_make_record())
        assert "[listener]" in output

    def test_includes_request_id_and_topic(self):
        set_log_context(request_id="r-20260101-120000-abc123")
        output = self._formatter().format(_make_record(topic="orders"))

        assert "[r-20260101-120000-abc123]" in output
        assert "[topic:orders]" in output

    def test_colors_level_when_enabled(self):
        output = ConsoleFormatter(use_colors=True).format(_make_record(level=logging.ERROR))
        assert "\033[31mERROR\033[0m" in output

    def test_appends_traceback(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _make_record(level=logging.ERROR, exc_info=sys.exc_info())

        output = self._formatter().format(record)
        assert "RuntimeError: boom" in output

    def test_info_is_not_colored(self):
        output = ConsoleFormatter(use_colors=True).format(_make_record())
        assert "\033[" not in output

    def test_topic_from_record_context(self):
        with record_context("orders", 0, 3):
            output = self._formatter().format(_make_record())
        assert "[topic:orders]" in output
