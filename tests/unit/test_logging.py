"""Unit tests for structured logging."""

from __future__ import annotations

import json
import logging
import sys

from agent_workflow_tracker.tracker.logging import JsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="agent_workflow_tracker.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Workflow step completed %s",
        args=("plan",),
        exc_info=None,
    )
    record.workflow_id = "wf_1"
    record.steps = ["plan", "criteria"]

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "agent_workflow_tracker.test"
    assert payload["message"] == "Workflow step completed plan"
    assert payload["extra"] == {"workflow_id": "wf_1", "steps": ["plan", "criteria"]}


def test_json_formatter_records_exceptions() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            name="t",
            level=logging.ERROR,
            pathname=__file__,
            lineno=1,
            msg="failed",
            args=None,
            exc_info=sys.exc_info(),
        )

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]
    assert "extra" not in payload


def test_configure_logging_writes_to_stderr() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr
        assert isinstance(handler.formatter, JsonFormatter)
        assert logging.getLogger("mcp").level == logging.INFO
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
