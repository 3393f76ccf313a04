"""Tests for the trace id and command timing log processor."""

import pytest

from league_stats import league_logging
from league_stats.league_logging import (
    add_trace_id,
    clear_trace_id,
    set_trace_id,
    start_command_timer,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_trace_id()
    yield
    clear_trace_id()


def test_event_carries_trace_id_and_command_duration(monkeypatch):
    monkeypatch.setattr(league_logging.time, "time", lambda: 100.0)
    set_trace_id("cafe0001")
    start_command_timer()
    monkeypatch.setattr(league_logging.time, "time", lambda: 100.25)

    event = add_trace_id(None, "info", {"event": "Store ready"})

    assert event["trace_id"] == "cafe0001"
    assert event["command_duration_ms"] == 250.0


def test_no_duration_outside_a_command():
    event = add_trace_id(None, "info", {"event": "Store ready"})

    assert len(event["trace_id"]) == 8
    assert "command_duration_ms" not in event


def test_clear_resets_trace_and_timer():
    set_trace_id("cafe0002")
    start_command_timer()

    clear_trace_id()

    assert league_logging.trace_id_var.get() is None
    assert league_logging.command_start_time.get() is None
