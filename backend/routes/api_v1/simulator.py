"""Simulator control API: init, start, pause, resume, stop, reset, status, log, drain."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from core.dependencies import get_simulator
from simulator.errors import (
    EmptyDatasetError,
    NotFoundError,
    SimulatorError,
)
from simulator.service import SimulatorService

router = APIRouter(prefix="/simulator", tags=["simulator"])


def _failure(error: Exception) -> JSONResponse:
    """Structured failure body; HTTP status follows the error kind."""
    if isinstance(error, NotFoundError):
        status_code = 404
    elif isinstance(error, (EmptyDatasetError, ValueError)):
        status_code = 422
    else:
        status_code = 400
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(error)},
    )


class InitBody(BaseModel):
    """
    Body for POST /simulator/init.

    Out-of-range values are clamped, not rejected: batch sizes to 3..50,
    interval_seconds to 1..90, overlap_threshold to 0..1.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "event_id": "demo-enduro",
                "batch_min": 30,
                "batch_max": 50,
                "interval_seconds": 5,
                "overlap_threshold": 0.7,
            }
        }
    )

    event_id: str = Field(..., min_length=1, description="Event to replay")
    batch_min: Optional[int] = Field(None, description="Smallest random batch")
    batch_max: Optional[int] = Field(None, description="Largest random batch")
    batch_size: Optional[int] = Field(None, description="Fixed batch size (disables the random range)")
    interval_seconds: Optional[float] = Field(None, description="Tick period in seconds")
    duration_minutes: Optional[float] = Field(
        None, description="Target replay duration; sets the tick period when interval_seconds is omitted"
    )
    overlap_threshold: Optional[float] = Field(
        None, description="Fraction of the current stage released before the next one starts"
    )
    order_variation: Optional[float] = Field(None, ge=0, description="Max start-order shuffle in positions")
    seed: Optional[int] = Field(None, description="Random seed for a reproducible run")


class ResetBody(BaseModel):
    event_id: Optional[str] = Field(None, description="Switch to another event (default: current one)")


@router.post("/init", summary="Initialize simulation for an event")
async def post_init(
    body: InitBody,
    service: SimulatorService = Depends(get_simulator),
):
    """Load every stage time of the event and prepare a run (READY)."""
    options = body.model_dump(exclude={"event_id"}, exclude_none=True)
    try:
        return await service.initialize(body.event_id.strip(), options)
    except (SimulatorError, ValueError) as e:
        return _failure(e)


@router.post("/start", summary="Start or resume the automatic release")
async def post_start(service: SimulatorService = Depends(get_simulator)):
    try:
        return await service.start()
    except SimulatorError as e:
        return _failure(e)


@router.post("/pause", summary="Toggle pause")
async def post_pause(service: SimulatorService = Depends(get_simulator)):
    try:
        return await service.toggle_pause()
    except SimulatorError as e:
        return _failure(e)


@router.post("/resume", summary="Resume a paused simulation")
async def post_resume(service: SimulatorService = Depends(get_simulator)):
    try:
        return await service.resume()
    except SimulatorError as e:
        return _failure(e)


@router.post("/stop", summary="Stop the automatic release (progress kept)")
async def post_stop(service: SimulatorService = Depends(get_simulator)):
    try:
        return await service.stop()
    except SimulatorError as e:
        return _failure(e)


@router.post("/reset", summary="Reset progress and redraw the start order")
async def post_reset(
    body: Optional[ResetBody] = Body(None),
    service: SimulatorService = Depends(get_simulator),
):
    event_id = body.event_id.strip() if body and body.event_id else None
    try:
        return await service.reset(event_id or None)
    except (SimulatorError, ValueError) as e:
        return _failure(e)


@router.get("/status", summary="Detailed simulation status")
async def get_status(service: SimulatorService = Depends(get_simulator)) -> dict:
    return await service.status()


@router.get("/log", summary="Recent simulator events, newest first")
async def get_log(service: SimulatorService = Depends(get_simulator)) -> dict:
    return {"log": await service.log_entries()}


@router.post(
    "/drain",
    summary="Release one batch on demand",
    description="Only releases while initialized and not running automatically; otherwise returns an empty batch.",
)
async def post_drain(service: SimulatorService = Depends(get_simulator)) -> dict:
    result = await service.drain()
    return {"success": True, **result.to_dict()}
