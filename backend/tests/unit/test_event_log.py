"""
Unit tests for the scheduler EventLog (newest first, bounded retention, logger mirror).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from simulator.events import EVENTS_LOGGER_NAME, EventLog


def _fixed_clock() -> datetime:
    return datetime(2026, 4, 12, 9, 30, 0, tzinfo=timezone.utc)


def test_entries_are_newest_first() -> None:
    log = EventLog(clock=_fixed_clock)
    log.add("INIT", "first")
    log.add("BATCH", "second", "PS1: 1,2")
    entries = log.entries()
    assert [e.message for e in entries] == ["second", "first"]
    assert entries[0].to_dict() == {
        "timestamp": "2026-04-12T09:30:00+00:00",
        "category": "BATCH",
        "message": "second",
        "detail": "PS1: 1,2",
    }


def test_retention_caps_entries() -> None:
    log = EventLog(retention=5)
    for i in range(12):
        log.add("BATCH", f"batch {i}")
    assert len(log) == 5
    assert log.entries()[0].message == "batch 11"
    assert log.entries()[-1].message == "batch 7"


def test_entries_mirrored_to_logger(caplog) -> None:
    log = EventLog()
    with caplog.at_level(logging.INFO, logger=EVENTS_LOGGER_NAME):
        log.add("PAUSE", "Simulation paused")
    assert any("sim_event=PAUSE" in r.getMessage() for r in caplog.records)


def test_clear() -> None:
    log = EventLog()
    log.add("INIT", "x")
    log.clear()
    assert log.entries() == []
