"""Simulator API: init/start/pause/stop/reset/drain, released-times feed, health and meta."""

from __future__ import annotations

import sys
from pathlib import Path

_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from core.database import dispose_database, init_database
from core.dependencies import get_simulator
from main import app
from models.event import Event
from seed.seed_demo_event import DEMO_EVENT_ID, build_demo_rows, seed_demo_event
from simulator.params import SimulationParams
from simulator.service import SimulatorService
from simulator.store import SqlTimingStore

SEED = {"pilots": 12, "stages": 3, "retirements": 2}


@pytest_asyncio.fixture
async def client(tmp_path):
    manager = await init_database(f"sqlite+aiosqlite:///{tmp_path / 'simulator.db'}")
    async with manager.session() as session:
        await seed_demo_event(session, **SEED)
        session.add(Event(id="empty-event", name="No times yet"))

    service = SimulatorService(
        SqlTimingStore(manager),
        defaults=SimulationParams(interval_seconds=90.0, order_variation=0),
    )
    app.dependency_overrides[get_simulator] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    await service.shutdown()
    app.dependency_overrides.pop(get_simulator, None)
    await dispose_database()


async def _init(client: AsyncClient, **options):
    return await client.post(
        "/api/v1/simulator/init",
        json={"event_id": DEMO_EVENT_ID, **options},
    )


@pytest.mark.asyncio
async def test_init_loads_demo_event(client):
    r = await _init(client, batch_size=5)
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["event_id"] == DEMO_EVENT_ID
    assert data["total_records"] == len(build_demo_rows(**SEED)["times"])
    assert data["competitor_count"] == 12
    assert data["stage_count"] == 3
    assert data["interval_ms"] == 90000


@pytest.mark.asyncio
async def test_init_unknown_event_is_404(client):
    r = await client.post("/api/v1/simulator/init", json={"event_id": "nope"})
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Event not found: nope"}


@pytest.mark.asyncio
async def test_init_event_without_times_is_422(client):
    r = await client.post("/api/v1/simulator/init", json={"event_id": "empty-event"})
    assert r.status_code == 422
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_init_clamps_out_of_range_options(client):
    await _init(client, batch_size=500, interval_seconds=0.1, overlap_threshold=3)
    status = (await client.get("/api/v1/simulator/status")).json()
    assert status["params"]["batch_size"] == 50
    assert status["params"]["overlap_threshold"] == 1.0
    assert status["interval_ms"] == 1000


@pytest.mark.asyncio
async def test_control_before_init_is_400(client):
    for path in ("start", "pause", "stop"):
        r = await client.post(f"/api/v1/simulator/{path}")
        assert r.status_code == 400
        assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_status_before_init(client):
    r = await client.get("/api/v1/simulator/status")
    assert r.status_code == 200
    data = r.json()
    assert data["state"] == "uninitialized"
    assert data["initialized"] is False
    assert data["active_stages"] == []


@pytest.mark.asyncio
async def test_start_pause_resume_stop(client):
    await _init(client, batch_size=5)

    r = await client.post("/api/v1/simulator/start")
    assert r.status_code == 200
    assert r.json()["message"] == "Simulation started"

    r = await client.post("/api/v1/simulator/pause")
    assert r.json()["paused"] is True
    r = await client.post("/api/v1/simulator/resume")
    assert r.json()["paused"] is False

    r = await client.post("/api/v1/simulator/stop")
    assert r.status_code == 200
    assert r.json()["total_released"] == 0

    r = await client.post("/api/v1/simulator/stop")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_drain_publishes_to_feed(client):
    await _init(client, batch_size=5)

    r = await client.post("/api/v1/simulator/drain")
    assert r.status_code == 200
    batch = r.json()
    assert batch["success"] is True
    assert len(batch["records"]) == 5
    assert batch["released"] == 5
    assert batch["competitors_per_stage"] == {"1": [1, 2, 3, 4, 5]}

    feed = (await client.get(f"/api/v1/feed/{DEMO_EVENT_ID}/times")).json()
    assert feed["count"] == 5
    assert [t["race_number"] for t in feed["times"]] == [1, 2, 3, 4, 5]
    assert {t["stage"] for t in feed["times"]} == {1}

    stage_two = (await client.get(f"/api/v1/feed/{DEMO_EVENT_ID}/times", params={"stage": 2})).json()
    assert stage_two["count"] == 0


@pytest.mark.asyncio
async def test_drain_while_running_returns_empty_batch(client):
    await _init(client, batch_size=5)
    await client.post("/api/v1/simulator/start")

    batch = (await client.post("/api/v1/simulator/drain")).json()
    assert batch["records"] == []
    assert batch["released"] == 0


@pytest.mark.asyncio
async def test_reset_clears_feed(client):
    await _init(client, batch_size=5)
    await client.post("/api/v1/simulator/drain")

    r = await client.post("/api/v1/simulator/reset")
    assert r.status_code == 200
    assert r.json()["event_id"] == DEMO_EVENT_ID

    feed = (await client.get(f"/api/v1/feed/{DEMO_EVENT_ID}/times")).json()
    assert feed["count"] == 0
    status = (await client.get("/api/v1/simulator/status")).json()
    assert status["state"] == "ready"
    assert status["total_released"] == 0


@pytest.mark.asyncio
async def test_reset_before_any_event_is_400(client):
    r = await client.post("/api/v1/simulator/reset")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_status_and_log_after_drain(client):
    await _init(client, batch_size=5)
    await client.post("/api/v1/simulator/drain")

    status = (await client.get("/api/v1/simulator/status")).json()
    assert status["state"] == "ready"
    assert status["total_released"] == 5
    assert status["persisted_total"] == 5
    assert status["persist_failures"] == 0
    assert status["current_stage"] == 1
    assert status["active_stages"] == [
        {"stage": 1, "released": 5, "total": 12, "releasable": 12, "percent": 42}
    ]
    assert status["armed"] is False

    log = (await client.get("/api/v1/simulator/log")).json()["log"]
    assert [e["category"] for e in log[:2]] == ["DB", "BATCH"]
    assert set(log[0]) == {"timestamp", "category", "message", "detail"}
    assert log[-1]["category"] == "INIT"


@pytest.mark.asyncio
async def test_health_and_version(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/api/v1/meta/version")
    assert r.status_code == 200
    assert r.json()["version"] == "1.0.0"
