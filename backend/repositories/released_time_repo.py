"""
Live feed repository: upsert released times and read them back for consumers.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, select

from models.pilot import Pilot
from models.released_time import ReleasedTime
from models.special_stage import SpecialStage
from .base import BaseRepository


class ReleasedTimeRepository(BaseRepository[ReleasedTime]):
    """Repository for ReleasedTime rows (one row per pilot and stage)."""

    model = ReleasedTime

    async def get_for(self, pilot_id: str, stage_id: str) -> Optional[ReleasedTime]:
        stmt = select(ReleasedTime).where(
            ReleasedTime.pilot_id == pilot_id,
            ReleasedTime.stage_id == stage_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        event_id: str,
        pilot_id: str,
        stage_id: str,
        time_seconds: float,
        penalty_seconds: float,
        released_at: datetime,
    ) -> ReleasedTime:
        """Insert or overwrite the released time for (pilot_id, stage_id)."""
        existing = await self.get_for(pilot_id, stage_id)
        if existing:
            existing.event_id = event_id
            existing.time_seconds = time_seconds
            existing.penalty_seconds = penalty_seconds
            existing.released_at = released_at
            self.session.add(existing)
            return existing
        row = ReleasedTime(
            event_id=event_id,
            pilot_id=pilot_id,
            stage_id=stage_id,
            time_seconds=time_seconds,
            penalty_seconds=penalty_seconds,
            released_at=released_at,
        )
        self.session.add(row)
        return row

    async def list_for_event(
        self, event_id: str, stage_order: Optional[int] = None
    ) -> List[Tuple[ReleasedTime, Pilot, SpecialStage]]:
        """Released times with pilot and stage, by stage order then race number."""
        stmt = (
            select(ReleasedTime, Pilot, SpecialStage)
            .join(Pilot, ReleasedTime.pilot_id == Pilot.id)
            .join(SpecialStage, ReleasedTime.stage_id == SpecialStage.id)
            .where(ReleasedTime.event_id == event_id)
        )
        if stage_order is not None:
            stmt = stmt.where(SpecialStage.order_number == stage_order)
        stmt = stmt.order_by(SpecialStage.order_number, Pilot.race_number)
        result = await self.session.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def delete_for_event(self, event_id: str) -> int:
        """Remove every released time of the event (not committed). Returns row count."""
        result = await self.session.execute(
            delete(ReleasedTime).where(ReleasedTime.event_id == event_id)
        )
        return result.rowcount or 0
