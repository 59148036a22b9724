"""GET /api/v1/feed/{event_id}/times: released stage times for polling consumers."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import get_db_session
from repositories.released_time_repo import ReleasedTimeRepository

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get(
    "/{event_id}/times",
    summary="Released times of an event",
    description="Every time released so far, ordered by stage then race number. Optional stage filter (order number).",
)
async def get_released_times(
    event_id: str,
    stage: Optional[int] = Query(None, ge=0, description="Stage order number"),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    repo = ReleasedTimeRepository(session)
    rows = await repo.list_for_event(event_id, stage_order=stage)
    return {
        "event_id": event_id,
        "count": len(rows),
        "times": [
            {
                "race_number": pilot.race_number,
                "surname": pilot.surname,
                "name": pilot.name,
                "category": pilot.category,
                "stage": special_stage.order_number,
                "stage_name": special_stage.name,
                "time_seconds": released.time_seconds,
                "penalty_seconds": released.penalty_seconds,
                "released_at": released.released_at.isoformat(),
            }
            for released, pilot, special_stage in rows
        ],
    }
