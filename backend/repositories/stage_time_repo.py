from __future__ import annotations

from typing import List, Tuple

from sqlalchemy import select

from models.pilot import Pilot
from models.special_stage import SpecialStage
from models.stage_time import StageTime
from .base import BaseRepository


class StageTimeRepository(BaseRepository[StageTime]):
    """Read access to the recorded stage times of an event."""

    model = StageTime

    async def list_for_event(
        self, event_id: str
    ) -> List[Tuple[StageTime, Pilot, SpecialStage]]:
        """All times of the event with their pilot and stage, by race number then stage order."""
        stmt = (
            select(StageTime, Pilot, SpecialStage)
            .join(Pilot, StageTime.pilot_id == Pilot.id)
            .join(SpecialStage, StageTime.stage_id == SpecialStage.id)
            .where(SpecialStage.event_id == event_id)
            .order_by(Pilot.race_number, SpecialStage.order_number)
        )
        result = await self.session.execute(stmt)
        return [tuple(row) for row in result.all()]
