"""
Timing store: loads an event's recorded times and persists released ones.

``TimingStore`` is the interface the simulator service depends on;
``SqlTimingStore`` implements it on the async SQLAlchemy repositories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Protocol

from sqlalchemy.exc import SQLAlchemyError

from core.database import DatabaseManager
from repositories.event_repo import EventRepository
from repositories.released_time_repo import ReleasedTimeRepository
from repositories.stage_time_repo import StageTimeRepository
from simulator.dataset import TimingRecord
from simulator.errors import EmptyDatasetError, NotFoundError, PersistError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventDataset:
    event_id: str
    event_name: str
    records: List[TimingRecord]


class TimingStore(Protocol):
    async def load_event(self, event_id: str) -> EventDataset:
        """Return every recorded time of the event. Raises NotFoundError / EmptyDatasetError."""
        ...

    async def persist_record(self, event_id: str, record: TimingRecord) -> None:
        """Upsert one released record. Raises PersistError."""
        ...

    async def clear_released(self, event_id: str) -> int:
        """Drop the released feed of the event. Raises PersistError."""
        ...


class SqlTimingStore:
    """TimingStore backed by the relational schema (one session per operation)."""

    def __init__(self, manager: DatabaseManager) -> None:
        self._manager = manager

    async def load_event(self, event_id: str) -> EventDataset:
        async with self._manager.session() as session:
            event = await EventRepository(session).get_by_id(event_id)
            if event is None:
                raise NotFoundError(f"Event not found: {event_id}")
            rows = await StageTimeRepository(session).list_for_event(event_id)

        if not rows:
            raise EmptyDatasetError(f"No stage times recorded for event {event_id}")

        records = [
            TimingRecord(
                competitor=pilot.race_number,
                stage=stage.order_number,
                time_seconds=stage_time.time_seconds,
                penalty_seconds=stage_time.penalty_seconds or 0.0,
                pilot_id=pilot.id,
                stage_id=stage.id,
                surname=pilot.surname,
                name=pilot.name,
                category=pilot.category,
                bike=pilot.bike,
                stage_name=stage.name,
            )
            for stage_time, pilot, stage in rows
        ]
        logger.info("Loaded %d stage times for event %s", len(records), event_id)
        return EventDataset(event_id=event.id, event_name=event.name, records=records)

    async def persist_record(self, event_id: str, record: TimingRecord) -> None:
        if record.pilot_id is None or record.stage_id is None:
            raise PersistError(
                f"Record #{record.competitor} PS{record.stage} has no pilot/stage reference"
            )
        try:
            async with self._manager.session() as session:
                await ReleasedTimeRepository(session).upsert(
                    event_id=event_id,
                    pilot_id=record.pilot_id,
                    stage_id=record.stage_id,
                    time_seconds=record.time_seconds,
                    penalty_seconds=record.penalty_seconds,
                    released_at=datetime.now(timezone.utc),
                )
        except SQLAlchemyError as e:
            raise PersistError(
                f"Could not save #{record.competitor} PS{record.stage}: {e}"
            ) from e

    async def clear_released(self, event_id: str) -> int:
        try:
            async with self._manager.session() as session:
                return await ReleasedTimeRepository(session).delete_for_event(event_id)
        except SQLAlchemyError as e:
            raise PersistError(f"Could not clear released times of {event_id}: {e}") from e
