"""
Simulator service: the single writer of one ReleaseScheduler.

Every control call and every tick goes through one asyncio.Lock, so batch
production never interleaves with initialize/reset/stop and status snapshots
never observe half a batch. Persisting a batch happens after the lock is
released; a failed write is counted and logged but never rolls back progress.

Each initialize/reset starts a new run generation. Writes of a batch produced
by an earlier generation are dropped, and clearing the feed waits for any
in-flight write (``_persist_lock``), so a reset never leaves stale rows.

The periodic tick is an asyncio task. Disarming clears ``_tick_task`` before
cancelling it and every tick re-checks ownership under the lock, so no tick
fires after stop/reset/initialize/shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional

from simulator.dataset import DatasetIndex, TimingRecord
from simulator.errors import InvalidStateError, PersistError, SimulatorError
from simulator.params import SimulationParams
from simulator.scheduler import BatchResult, ReleaseScheduler, RunState
from simulator.store import TimingStore

logger = logging.getLogger(__name__)


class SimulatorService:
    """Async control surface over one ReleaseScheduler and its tick driver."""

    def __init__(
        self,
        store: TimingStore,
        defaults: Optional[SimulationParams] = None,
        default_event_id: Optional[str] = None,
        scheduler: Optional[ReleaseScheduler] = None,
    ) -> None:
        self._store = store
        self._defaults = defaults or SimulationParams()
        self._default_event_id = default_event_id
        self._scheduler = scheduler or ReleaseScheduler()
        self._lock = asyncio.Lock()
        self._persist_lock = asyncio.Lock()
        self._tick_task: Optional[asyncio.Task] = None
        self._generation = 0
        self.persisted_total = 0
        self.persist_failures = 0

    @property
    def scheduler(self) -> ReleaseScheduler:
        return self._scheduler

    @property
    def is_armed(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    # --- control operations ---

    async def initialize(
        self, event_id: str, options: Optional[Mapping[str, Any]] = None
    ) -> dict:
        """Load ``event_id`` and prepare a fresh run. Prior state survives a failure."""
        params = SimulationParams.from_options(options, base=self._defaults)
        try:
            dataset = await self._store.load_event(event_id)
            index = DatasetIndex.build(dataset.records)
        except (SimulatorError, ValueError) as e:
            self._scheduler.log.add("ERROR", str(e))
            logger.warning("Initialization of event %s failed: %s", event_id, e)
            raise

        async with self._lock:
            self._generation += 1
            self._disarm()
            await self._clear_feed(event_id)
            self._scheduler.initialize(
                index, params, event_id=dataset.event_id, event_name=dataset.event_name
            )
            summary = self._summary()
        logger.info(
            "Simulation initialized: event=%s times=%d competitors=%d stages=%d interval=%.1fs",
            event_id,
            index.total_records,
            index.competitor_count,
            index.stage_count,
            self._scheduler.interval_seconds,
        )
        return summary

    async def start(self) -> dict:
        async with self._lock:
            changed = self._scheduler.start()
            if not self.is_armed:
                self._arm()
            interval_ms = int(self._scheduler.interval_seconds * 1000)
        return {
            "success": True,
            "message": "Simulation started" if changed else "Simulation already running",
            "interval_ms": interval_ms,
        }

    async def resume(self) -> dict:
        result = await self.start()
        return {"success": True, "paused": False, "interval_ms": result["interval_ms"]}

    async def toggle_pause(self) -> dict:
        async with self._lock:
            paused = self._scheduler.toggle_pause()
        return {
            "success": True,
            "paused": paused,
            "message": "Paused" if paused else "Resumed",
        }

    async def stop(self) -> dict:
        async with self._lock:
            self._scheduler.stop()
            self._disarm()
            progress = self._scheduler.progress
            total = self._scheduler.index.total_records
        return {
            "success": True,
            "message": "Simulation stopped",
            "total_released": progress.total_released,
            "total_records": total,
        }

    async def reset(self, event_id: Optional[str] = None) -> dict:
        """Restart from zero; reuses the loaded dataset unless another event is requested."""
        target = event_id or self._scheduler.event_id or self._default_event_id
        if target is None:
            raise InvalidStateError("No event to reset: initialize with an event first")

        reuse = self._scheduler.index is not None and target == self._scheduler.event_id
        dataset = None
        index: Optional[DatasetIndex] = None
        if not reuse:
            try:
                dataset = await self._store.load_event(target)
                index = DatasetIndex.build(dataset.records)
            except (SimulatorError, ValueError) as e:
                self._scheduler.log.add("ERROR", str(e))
                logger.warning("Reset on event %s failed: %s", target, e)
                raise

        async with self._lock:
            self._generation += 1
            self._disarm()
            await self._clear_feed(target)
            if index is None:
                self._scheduler.reset()
            elif not self._scheduler.is_initialized:
                self._scheduler.initialize(
                    index, self._defaults, event_id=dataset.event_id, event_name=dataset.event_name
                )
            else:
                self._scheduler.reset(
                    index, event_id=dataset.event_id, event_name=dataset.event_name
                )
            summary = self._summary()
        logger.info("Simulation reset: event=%s reused_dataset=%s", target, reuse)
        return summary

    async def status(self) -> dict:
        async with self._lock:
            status = self._scheduler.status()
            status["armed"] = self.is_armed
        status["persisted_total"] = self.persisted_total
        status["persist_failures"] = self.persist_failures
        return status

    async def log_entries(self) -> List[dict]:
        async with self._lock:
            return [entry.to_dict() for entry in self._scheduler.log.entries()]

    async def drain(self) -> BatchResult:
        """Release one batch on demand (only while no automatic run is active)."""
        async with self._lock:
            result = self._scheduler.drain()
            event_id = self._scheduler.event_id
            generation = self._generation
        if result.records and event_id is not None:
            await self._persist(event_id, result.records, generation)
        return result

    async def tick(self) -> BatchResult:
        """Produce and persist one batch of the running simulation."""
        return await self._tick(owner=None)

    async def shutdown(self) -> None:
        async with self._lock:
            task = self._disarm()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        logger.info("Simulator service stopped")

    # --- tick driver ---

    async def _tick(self, owner: Optional[asyncio.Task]) -> BatchResult:
        async with self._lock:
            if owner is not None and self._tick_task is not owner:
                return BatchResult()
            result = self._scheduler.produce_batch()
            event_id = self._scheduler.event_id
            generation = self._generation
            if self._scheduler.state is RunState.COMPLETED:
                self._disarm()
        if result.records and event_id is not None:
            await self._persist(event_id, result.records, generation)
        return result

    async def _run_ticks(self) -> None:
        me = asyncio.current_task()
        while self._tick_task is me:
            await asyncio.sleep(self._scheduler.interval_seconds)
            if self._tick_task is not me:
                break
            try:
                await self._tick(owner=me)
            except Exception:
                logger.exception("Simulator tick failed")

    def _arm(self) -> None:
        self._tick_task = asyncio.create_task(self._run_ticks(), name="simulator-tick")
        logger.debug("Tick armed every %.1fs", self._scheduler.interval_seconds)

    def _disarm(self) -> Optional[asyncio.Task]:
        task = self._tick_task
        self._tick_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            logger.debug("Tick disarmed")
        return task

    # --- persistence ---

    async def _persist(
        self, event_id: str, records: List[TimingRecord], generation: int
    ) -> None:
        saved = 0
        failed = 0
        async with self._persist_lock:
            for position, record in enumerate(records):
                if generation != self._generation:
                    logger.info(
                        "Dropped %d times of a superseded run of event %s",
                        len(records) - position,
                        event_id,
                    )
                    return
                try:
                    await self._store.persist_record(event_id, record)
                    saved += 1
                except PersistError as e:
                    failed += 1
                    logger.warning("Persist failed: %s", e)
        if generation != self._generation:
            return
        self.persisted_total += saved
        self.persist_failures += failed
        if saved:
            self._scheduler.log.add("DB", f"Saved {saved} times")
        if failed:
            self._scheduler.log.add("ERROR", f"{failed} times not saved")

    async def _clear_feed(self, event_id: str) -> None:
        try:
            async with self._persist_lock:
                removed = await self._store.clear_released(event_id)
        except PersistError as e:
            logger.warning("Could not clear released feed: %s", e)
            return
        if removed:
            logger.info("Cleared %d released times of event %s", removed, event_id)

    def _summary(self) -> dict:
        index = self._scheduler.index
        return {
            "success": True,
            "event_id": self._scheduler.event_id,
            "event_name": self._scheduler.event_name,
            "total_records": index.total_records,
            "competitor_count": index.competitor_count,
            "stage_count": index.stage_count,
            "interval_ms": int(self._scheduler.interval_seconds * 1000),
        }


_service: Optional[SimulatorService] = None


def init_simulator_service(
    store: TimingStore,
    defaults: Optional[SimulationParams] = None,
    default_event_id: Optional[str] = None,
) -> SimulatorService:
    """Create the process-wide SimulatorService (once)."""
    global _service

    if _service is None:
        _service = SimulatorService(store, defaults=defaults, default_event_id=default_event_id)
    return _service


async def shutdown_simulator_service() -> None:
    global _service

    if _service is not None:
        await _service.shutdown()
        _service = None


def get_simulator_service() -> SimulatorService:
    if _service is None:
        raise RuntimeError("SimulatorService is not initialized.")
    return _service
