"""
Bounded, most-recent-first log of scheduler events (init, batches, pauses, ...).
Purely observational. Each entry is also emitted on the ``simulator_events``
logger as a structured line.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional

EVENTS_LOGGER_NAME = "simulator_events"
LOG_RETENTION = 100


def _logger() -> logging.Logger:
    return logging.getLogger(EVENTS_LOGGER_NAME)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    category: str
    message: str
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class EventLog:
    """Ring buffer of LogEntry, newest first, capped at ``retention`` entries."""

    def __init__(
        self,
        retention: int = LOG_RETENTION,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._entries: Deque[LogEntry] = deque(maxlen=retention)
        self._clock = clock

    def add(self, category: str, message: str, detail: Optional[str] = None) -> LogEntry:
        entry = LogEntry(
            timestamp=self._clock().isoformat(timespec="seconds"),
            category=category,
            message=message,
            detail=detail,
        )
        self._entries.appendleft(entry)
        suffix = f" detail={detail!r}" if detail else ""
        _logger().info(
            "sim_event=%s message=%r%s",
            category,
            message,
            suffix,
            extra={"sim_event_type": category},
        )
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
