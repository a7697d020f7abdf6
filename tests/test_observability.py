"""Tests for run-context logging helpers."""

import logging
import os

import structlog

from luma_attendees.observability import (
    bind_event_context,
    bind_run_context,
    clear_run_context,
    get_current_run_id,
    get_run_logger,
    quiet_dependency_logging,
)
from luma_attendees.observability.logging import NOISY_LOGGERS


class TestRunContext:
    def setup_method(self):
        clear_run_context()

    def teardown_method(self):
        clear_run_context()

    def test_bind_and_clear(self):
        bind_run_context("run-1", "https://lu.ma/demo")
        bind_event_context("https://lu.ma/demo")

        assert get_current_run_id() == "run-1"
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"run_id": "run-1", "target_url": "https://lu.ma/demo", "event_url": "https://lu.ma/demo"}

        clear_run_context()

        assert get_current_run_id() is None
        assert structlog.contextvars.get_contextvars() == {}

    def test_run_logger_carries_context(self):
        bind_run_context("run-2", "https://lu.ma/cal")
        capture = structlog.testing.LogCapture()
        structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
        try:
            get_run_logger().info("export_written", attendees=3)
        finally:
            structlog.reset_defaults()

        assert capture.entries == [
            {"event": "export_written", "attendees": 3, "run_id": "run-2", "target_url": "https://lu.ma/cal", "log_level": "info"}
        ]


class TestQuietDependencyLogging:
    def test_caps_noisy_loggers(self, monkeypatch):
        monkeypatch.delenv("BROWSER_USE_LOGGING_LEVEL", raising=False)
        for name in NOISY_LOGGERS:
            monkeypatch.setattr(logging.getLogger(name), "level", logging.DEBUG)

        quiet_dependency_logging()

        assert os.environ["BROWSER_USE_LOGGING_LEVEL"] == "warning"
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_respects_explicit_level(self, monkeypatch):
        monkeypatch.setenv("BROWSER_USE_LOGGING_LEVEL", "debug")
        quiet_dependency_logging()
        assert os.environ["BROWSER_USE_LOGGING_LEVEL"] == "debug"
