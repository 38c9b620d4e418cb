"""Tests for structured search event logging."""

import json
import logging
import sys

import structlog

from portal_search.utils.logging import build_processors, log_search_event


class RecordingLogger:
    def __init__(self):
        self.records = []

    def _record(self, level):
        def log(event, **kwargs):
            self.records.append((level, event, kwargs))

        return log

    def __getattr__(self, level):
        return self._record(level)


def test_failures_are_logged_at_error():
    logger = RecordingLogger()
    log_search_event(logger, "search_failed", "park", client_key="10.0.0.1")
    assert logger.records == [("error", "search_failed", {"query": "park", "client_key": "10.0.0.1"})]


def test_timeouts_are_logged_at_warning():
    logger = RecordingLogger()
    log_search_event(logger, "embedding_timeout", "park")
    assert logger.records[0][0] == "warning"


def test_other_events_are_logged_at_info():
    logger = RecordingLogger()
    log_search_event(logger, "search_completed", "park", total_count=3)
    assert logger.records == [("info", "search_completed", {"query": "park", "total_count": 3})]


def render(json_logs: bool, event_dict: dict):
    """Run an event through the chain, skipping the level filter that needs a configured root logger."""
    logger = logging.getLogger("portal_search.tests")
    processors = build_processors(json_logs)
    assert processors[0] is structlog.stdlib.filter_by_level
    for processor in processors[1:]:
        event_dict = processor(logger, "error", event_dict)
    return event_dict


def failing_exc_info():
    try:
        raise ConnectionRefusedError("index store unreachable")
    except ConnectionRefusedError:
        return sys.exc_info()


def test_json_logs_carry_structured_exception():
    output = render(True, {"event": "search_failed", "query": "park", "exc_info": failing_exc_info()})

    record = json.loads(output)
    assert record["event"] == "search_failed"
    assert record["level"] == "error"
    assert record["logger"] == "portal_search.tests"
    assert record["exception"][0]["exc_type"] == "ConnectionRefusedError"
    assert "exc_info" not in record


def test_console_logs_render_traceback():
    output = render(False, {"event": "search_failed", "query": "park", "exc_info": failing_exc_info()})

    assert "search_failed" in output
    assert "ConnectionRefusedError" in output
    assert "index store unreachable" in output
