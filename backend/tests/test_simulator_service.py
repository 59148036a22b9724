"""SimulatorService: lock-serialized control calls, tick driver, persistence accounting."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Tuple

_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import pytest

from simulator.dataset import TimingRecord
from simulator.errors import (
    EmptyDatasetError,
    InvalidStateError,
    NotFoundError,
    PersistError,
)
from simulator.params import SimulationParams
from simulator.scheduler import RunState
from simulator.service import SimulatorService
from simulator.store import EventDataset


def _records(competitors: int, stages: int) -> List[TimingRecord]:
    return [
        TimingRecord(competitor=c, stage=s, time_seconds=300.0 + c)
        for c in range(1, competitors + 1)
        for s in range(1, stages + 1)
    ]


class FakeStore:
    """In-memory TimingStore."""

    def __init__(self, datasets: Dict[str, List[TimingRecord]], fail_persist: bool = False) -> None:
        self.datasets = datasets
        self.fail_persist = fail_persist
        self.loads = 0
        self.persisted: List[Tuple[str, Tuple[int, int]]] = []
        self.cleared: List[str] = []

    async def load_event(self, event_id: str) -> EventDataset:
        self.loads += 1
        if event_id not in self.datasets:
            raise NotFoundError(f"Event not found: {event_id}")
        records = self.datasets[event_id]
        if not records:
            raise EmptyDatasetError(f"No stage times recorded for event {event_id}")
        return EventDataset(event_id=event_id, event_name=f"Event {event_id}", records=records)

    async def persist_record(self, event_id: str, record: TimingRecord) -> None:
        if self.fail_persist:
            raise PersistError("disk full")
        self.persisted.append((event_id, record.key))

    async def clear_released(self, event_id: str) -> int:
        self.cleared.append(event_id)
        return 0


def _service(store: FakeStore, interval_seconds: float = 90.0, **kwargs) -> SimulatorService:
    defaults = SimulationParams(
        batch_size=3,
        interval_seconds=interval_seconds,
        order_variation=0,
    )
    return SimulatorService(store, defaults=defaults, **kwargs)


@pytest.mark.asyncio
async def test_initialize_returns_summary_and_clears_feed():
    store = FakeStore({"ev": _records(4, 2)})
    service = _service(store)

    summary = await service.initialize("ev", {"interval_seconds": 2})

    assert summary == {
        "success": True,
        "event_id": "ev",
        "event_name": "Event ev",
        "total_records": 8,
        "competitor_count": 4,
        "stage_count": 2,
        "interval_ms": 2000,
    }
    assert store.cleared == ["ev"]
    assert service.scheduler.state is RunState.READY
    assert service.is_armed is False


@pytest.mark.asyncio
async def test_start_before_initialize_is_rejected():
    service = _service(FakeStore({}))
    with pytest.raises(InvalidStateError):
        await service.start()
    assert service.is_armed is False


@pytest.mark.asyncio
async def test_start_arms_a_single_tick_task():
    service = _service(FakeStore({"ev": _records(4, 2)}))
    await service.initialize("ev")

    first = await service.start()
    task = service._tick_task
    second = await service.start()

    assert first["message"] == "Simulation started"
    assert second["message"] == "Simulation already running"
    assert service._tick_task is task
    assert service.is_armed is True
    await service.shutdown()


@pytest.mark.asyncio
async def test_periodic_tick_releases_and_persists():
    store = FakeStore({"ev": _records(6, 2)})
    service = _service(store, interval_seconds=1.0)
    await service.initialize("ev")
    await service.start()

    await asyncio.sleep(1.4)

    status = await service.status()
    assert status["total_released"] == 3
    assert status["persisted_total"] == 3
    assert [key for _, key in store.persisted] == [(1, 1), (2, 1), (3, 1)]
    await service.stop()


@pytest.mark.asyncio
async def test_no_tick_fires_after_stop():
    store = FakeStore({"ev": _records(6, 2)})
    service = _service(store, interval_seconds=1.0)
    await service.initialize("ev")
    await service.start()
    result = await service.stop()

    await asyncio.sleep(1.3)

    assert result["total_released"] == 0
    assert service.is_armed is False
    assert store.persisted == []
    assert service.scheduler.state is RunState.READY


@pytest.mark.asyncio
async def test_completion_disarms_the_tick():
    service = _service(FakeStore({"ev": _records(2, 1)}))
    await service.initialize("ev")
    await service.start()

    first = await service.tick()
    last = await service.tick()

    assert len(first.records) == 2
    assert last.completed is True
    assert service.scheduler.state is RunState.COMPLETED
    assert service.is_armed is False


@pytest.mark.asyncio
async def test_persist_failures_are_counted_without_rollback():
    store = FakeStore({"ev": _records(6, 1)}, fail_persist=True)
    service = _service(store)
    await service.initialize("ev")
    await service.start()

    result = await service.tick()

    assert len(result.records) == 3
    status = await service.status()
    assert status["total_released"] == 3
    assert status["persisted_total"] == 0
    assert status["persist_failures"] == 3
    log = await service.log_entries()
    assert log[0]["category"] == "ERROR"
    assert log[0]["message"] == "3 times not saved"
    await service.shutdown()


@pytest.mark.asyncio
async def test_pause_and_resume():
    service = _service(FakeStore({"ev": _records(4, 1)}))
    await service.initialize("ev")
    await service.start()

    paused = await service.toggle_pause()
    assert paused == {"success": True, "paused": True, "message": "Paused"}
    assert (await service.tick()).records == []

    resumed = await service.resume()
    assert resumed["paused"] is False
    assert service.scheduler.state is RunState.RUNNING
    await service.shutdown()


@pytest.mark.asyncio
async def test_reset_reuses_loaded_dataset():
    store = FakeStore({"ev": _records(4, 2), "other": _records(3, 3)})
    service = _service(store)
    await service.initialize("ev")
    await service.start()
    await service.tick()

    summary = await service.reset()

    assert store.loads == 1
    assert summary["event_id"] == "ev"
    assert service.scheduler.progress.total_released == 0
    assert service.scheduler.state is RunState.READY
    assert service.is_armed is False
    assert store.cleared == ["ev", "ev"]

    switched = await service.reset("other")
    assert store.loads == 2
    assert switched["event_id"] == "other"
    assert switched["total_records"] == 9


@pytest.mark.asyncio
async def test_reset_without_any_event_is_rejected():
    service = _service(FakeStore({"ev": _records(2, 1)}))
    with pytest.raises(InvalidStateError):
        await service.reset()


@pytest.mark.asyncio
async def test_reset_falls_back_to_default_event():
    service = _service(FakeStore({"ev": _records(2, 1)}), default_event_id="ev")
    summary = await service.reset()
    assert summary["event_id"] == "ev"
    assert service.scheduler.state is RunState.READY


@pytest.mark.asyncio
async def test_failed_initialize_keeps_current_run():
    store = FakeStore({"ev": _records(6, 1), "empty": []})
    service = _service(store)
    await service.initialize("ev")
    await service.start()
    await service.tick()

    with pytest.raises(NotFoundError):
        await service.initialize("missing")
    with pytest.raises(EmptyDatasetError):
        await service.initialize("empty")

    status = await service.status()
    assert status["event_id"] == "ev"
    assert status["state"] == "running"
    assert status["total_released"] == 3
    assert status["armed"] is True
    log = await service.log_entries()
    assert log[0]["category"] == "ERROR"
    await service.shutdown()


@pytest.mark.asyncio
async def test_drain_only_outside_automatic_run():
    store = FakeStore({"ev": _records(6, 1)})
    service = _service(store)
    await service.initialize("ev")

    pulled = await service.drain()
    assert len(pulled.records) == 3
    assert len(store.persisted) == 3

    await service.start()
    assert (await service.drain()).records == []
    await service.shutdown()


@pytest.mark.asyncio
async def test_shutdown_cancels_tick():
    service = _service(FakeStore({"ev": _records(2, 1)}))
    await service.initialize("ev")
    await service.start()
    task = service._tick_task

    await service.shutdown()

    assert service.is_armed is False
    assert task.done()


class BlockingStore(FakeStore):
    """Holds the first write open until ``release`` is set; keeps a live feed."""

    def __init__(self, datasets: Dict[str, List[TimingRecord]]) -> None:
        super().__init__(datasets)
        self.feed: set = set()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def persist_record(self, event_id: str, record: TimingRecord) -> None:
        if not self.entered.is_set():
            self.entered.set()
            await self.release.wait()
        await super().persist_record(event_id, record)
        self.feed.add((event_id, record.key))

    async def clear_released(self, event_id: str) -> int:
        self.cleared.append(event_id)
        stale = {row for row in self.feed if row[0] == event_id}
        self.feed -= stale
        return len(stale)


@pytest.mark.asyncio
async def test_reset_during_persist_leaves_no_stale_times():
    store = BlockingStore({"ev": _records(6, 1)})
    service = _service(store)
    await service.initialize("ev")

    drain_task = asyncio.create_task(service.drain())
    await store.entered.wait()
    reset_task = asyncio.create_task(service.reset())
    for _ in range(5):
        await asyncio.sleep(0)
    assert not reset_task.done()

    store.release.set()
    batch = await drain_task
    await reset_task

    assert len(batch.records) == 3
    assert len(store.persisted) == 1
    assert store.feed == set()
    status = await service.status()
    assert status["total_released"] == 0
    assert status["persisted_total"] == 0
    assert [e["category"] for e in await service.log_entries()].count("DB") == 0
