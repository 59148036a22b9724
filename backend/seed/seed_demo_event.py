"""
Deterministic demo event for local replay: pilots, special stages and their times.
Idempotent: rows are inserted only when their primary key is missing. No network calls.
"""
from __future__ import annotations

import random
from datetime import date
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.event import Event
from models.pilot import Pilot
from models.special_stage import SpecialStage
from models.stage_time import StageTime

DEMO_EVENT_ID = "demo-enduro"
DEMO_EVENT_NAME = "Demo Enduro Day 1"

CATEGORIES = ["E1", "E2", "E3", "Junior", "Youth", "Veteran"]
BIKES = ["KTM 250 EXC", "Beta RR 300", "Husqvarna TE 250", "Honda CRF 450RX", "TM EN 300", "GasGas EC 250"]
SURNAMES = ["Rossi", "Bianchi", "Ferrari", "Esposito", "Romano", "Colombo", "Ricci", "Marino", "Greco", "Bruno"]
NAMES = ["Marco", "Luca", "Andrea", "Matteo", "Davide", "Simone", "Paolo", "Giorgio", "Alessio", "Nicola"]
STAGE_NAMES = ["Cross Test", "Enduro Test", "Extreme Test"]


def build_demo_rows(
    pilots: int = 60,
    stages: int = 6,
    retirements: int = 4,
    seed: int = 7,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Plain-dict rows for the demo event. A retired pilot has no time on any stage
    from its retirement stage onwards, so every recorded time stays releasable.
    """
    rng = random.Random(seed)
    pilot_rows = [
        {
            "id": f"{DEMO_EVENT_ID}-p{n}",
            "race_number": n,
            "surname": SURNAMES[n % len(SURNAMES)],
            "name": NAMES[(n * 3) % len(NAMES)],
            "category": CATEGORIES[n % len(CATEGORIES)],
            "bike": BIKES[(n * 5) % len(BIKES)],
        }
        for n in range(1, pilots + 1)
    ]
    stage_rows = [
        {
            "id": f"{DEMO_EVENT_ID}-ps{k}",
            "order_number": k,
            "name": f"PS{k} {STAGE_NAMES[(k - 1) % len(STAGE_NAMES)]}",
            "base_seconds": 300.0 + 45.0 * ((k - 1) % len(STAGE_NAMES)),
        }
        for k in range(1, stages + 1)
    ]
    retired_at = {
        n: rng.randint(2, stages)
        for n in rng.sample(range(1, pilots + 1), k=min(retirements, pilots))
    }

    time_rows: List[Dict[str, Any]] = []
    for pilot in pilot_rows:
        skill = rng.uniform(0.92, 1.25)
        for stage in stage_rows:
            if stage["order_number"] >= retired_at.get(pilot["race_number"], stages + 1):
                break
            penalty = 60.0 if rng.random() < 0.03 else 0.0
            time_rows.append({
                "pilot_id": pilot["id"],
                "stage_id": stage["id"],
                "time_seconds": round(stage["base_seconds"] * skill * rng.uniform(0.97, 1.05), 2),
                "penalty_seconds": penalty,
            })
    return {"pilots": pilot_rows, "stages": stage_rows, "times": time_rows}


async def seed_demo_event(session: AsyncSession, **kwargs: Any) -> Dict[str, int]:
    """
    Idempotent seed of the demo event. kwargs go to build_demo_rows.
    Returns counts: events_inserted, pilots_inserted, stages_inserted, times_inserted.
    """
    rows = build_demo_rows(**kwargs)
    counts = {
        "events_inserted": 0,
        "pilots_inserted": 0,
        "stages_inserted": 0,
        "times_inserted": 0,
    }

    if await session.get(Event, DEMO_EVENT_ID) is None:
        session.add(Event(
            id=DEMO_EVENT_ID,
            name=DEMO_EVENT_NAME,
            place="Demo Valley",
            event_date=date(2026, 4, 12),
        ))
        counts["events_inserted"] += 1
        await session.flush()

    for row in rows["pilots"]:
        if await session.get(Pilot, row["id"]) is None:
            session.add(Pilot(event_id=DEMO_EVENT_ID, nation="ITA", **row))
            counts["pilots_inserted"] += 1

    for row in rows["stages"]:
        if await session.get(SpecialStage, row["id"]) is None:
            session.add(SpecialStage(
                id=row["id"],
                event_id=DEMO_EVENT_ID,
                order_number=row["order_number"],
                name=row["name"],
            ))
            counts["stages_inserted"] += 1
    await session.flush()

    for row in rows["times"]:
        stmt = select(StageTime.id).where(
            StageTime.pilot_id == row["pilot_id"],
            StageTime.stage_id == row["stage_id"],
        )
        r = await session.execute(stmt)
        if r.scalar_one_or_none() is None:
            session.add(StageTime(**row))
            counts["times_inserted"] += 1

    return counts
