"""
Timing-provider compatible classification endpoint.

Existing live-timing pollers call
``/END/mpcache-5/get/clasps/{year}/{team}/{manif}/{day}/{stage}/...`` and read
``data.clasdella``. Each call drains one batch; the service decides under its
lock whether a pull may release (never while the automatic run owns the feed).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from core.dependencies import get_simulator
from simulator.dataset import TimingRecord
from simulator.service import SimulatorService

router = APIRouter(tags=["legacy"])


def format_stage_time(seconds: Optional[float]) -> Optional[str]:
    """Provider notation M'SS.ss (125.5 -> 2'05.50). Zero or missing gives None."""
    if not seconds:
        return None
    minutes = int(seconds // 60)
    rest = seconds - minutes * 60
    return f"{minutes}'{rest:05.2f}"


def classification_row(record: TimingRecord) -> dict:
    return {
        "Numero": record.competitor,
        "Tempo": format_stage_time(record.time_seconds),
        "Cognome": record.surname or "",
        "Nome": record.name or "",
        "Classe": record.category or "",
        "Moto": record.bike or "",
        "Motoclub": "",
        "Naz": "ITA",
        "Penalita": record.penalty_seconds or 0,
        "NumeroProva": record.stage,
    }


@router.get(
    "/END/mpcache-5/get/clasps/{year}/{team}/{manif}/{day}/{stage}/{rest:path}",
    summary="Provider-compatible classification pull",
)
async def get_clasps(
    year: str,
    team: str,
    manif: str,
    day: str,
    stage: str,
    rest: str,
    service: SimulatorService = Depends(get_simulator),
) -> dict:
    result = await service.drain()
    return {"data": {"clasdella": [classification_row(r) for r in result.records]}}
