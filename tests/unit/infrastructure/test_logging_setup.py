"""Tests for the structlog/stdlib logging configuration helpers."""

from __future__ import annotations

import logging

import structlog

from resolvarr.infrastructure.config import AppConfig
from resolvarr.infrastructure.logging.setup import (
    _add_record_created_timestamp_utc,
    _drop_color_message,
    _LevelRangeFilter,
    build_logging_config,
)


def _record(level: int) -> logging.LogRecord:
    return logging.LogRecord("t", level, __file__, 1, "msg", None, None)


class TestBuildLoggingConfig:
    def test_level_applied_everywhere(self) -> None:
        cfg = build_logging_config(AppConfig(log_level="DEBUG"))

        assert cfg["root"]["level"] == "DEBUG"
        assert {c["level"] for c in cfg["loggers"].values()} == {"DEBUG"}

    def test_json_renderer_in_prod(self) -> None:
        cfg = build_logging_config(AppConfig(environment="prod"))

        processors = cfg["formatters"]["structlog"]["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_by_default(self) -> None:
        cfg = build_logging_config(AppConfig())

        processors = cfg["formatters"]["structlog"]["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_template_not_mutated(self) -> None:
        first = build_logging_config(AppConfig(log_level="ERROR"))
        second = build_logging_config(AppConfig(log_level="INFO"))

        assert first["root"]["level"] == "ERROR"
        assert second["loggers"]["uvicorn"]["level"] == "INFO"


class TestProcessors:
    def test_drop_color_message(self) -> None:
        event = {"event": "x", "color_message": "\x1b[1mx"}
        assert _drop_color_message(None, None, event) == {"event": "x"}

    def test_record_timestamp_is_utc(self) -> None:
        record = _record(logging.INFO)
        record.created = 0.0

        event = _add_record_created_timestamp_utc(None, None, {"_record": record})

        assert event["timestamp"] == "1970-01-01T00:00:00Z"

    def test_no_record_leaves_event_alone(self) -> None:
        assert _add_record_created_timestamp_utc(None, None, {"event": "x"}) == {
            "event": "x"
        }


class TestLevelRangeFilter:
    def test_stdout_range(self) -> None:
        f = _LevelRangeFilter(high=logging.WARNING)
        assert f.filter(_record(logging.INFO))
        assert f.filter(_record(logging.WARNING))
        assert not f.filter(_record(logging.ERROR))

    def test_stderr_range(self) -> None:
        f = _LevelRangeFilter(low=logging.ERROR)
        assert not f.filter(_record(logging.WARNING))
        assert f.filter(_record(logging.CRITICAL))
