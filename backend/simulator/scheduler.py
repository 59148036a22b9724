"""
Progressive release scheduler: replays a DatasetIndex as a live feed.

Each call to ``produce_batch`` releases a randomly sized batch, stage by
stage. At most two stages release at once: the current stage and, once the
current stage has crossed the overlap threshold, the next one. A competitor's
stage N record is released only after its stage N-1 record.

The scheduler is synchronous and not thread-safe; callers serialize access
(see simulator.service).
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from simulator.dataset import DatasetIndex, TimingRecord
from simulator.errors import InvalidStateError
from simulator.events import EventLog
from simulator.params import SimulationParams

# Share of a batch earmarked for the current stage when the next one overlaps.
MAIN_STAGE_SHARE = 0.7
# Current stage plus the overlapping next stage.
MAX_ACTIVE_STAGES = 2


class RunState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


def perturbed_order(
    competitors: Sequence[int], variation: float, rng: random.Random
) -> List[int]:
    """Shuffle ``competitors`` by at most about ``variation`` positions.

    Sort key is natural index + uniform(-variation, +variation); ties keep the
    natural order.
    """
    keyed = [
        (index + rng.uniform(-variation, variation), index, competitor)
        for index, competitor in enumerate(competitors)
    ]
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [competitor for _, _, competitor in keyed]


def split_batch(batch_size: int) -> Tuple[int, int]:
    """Earmarks (current stage, next stage) of an overlapping batch.

    The current stage gets ceil(batch_size * MAIN_STAGE_SHARE), rounded first
    so float noise cannot add one (10 -> 7/3, not 8/2).
    """
    main = math.ceil(round(batch_size * MAIN_STAGE_SHARE, 9))
    return main, batch_size - main


def _percent(released: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(released / total * 100)


@dataclass
class ReleaseProgress:
    """Mutable release state of one run."""

    released_per_stage: List[int]
    last_released_stage: Dict[int, int]
    competitor_order: List[int]
    current_stage_index: int = 0
    total_released: int = 0

    @classmethod
    def fresh(cls, index: DatasetIndex, order: List[int]) -> "ReleaseProgress":
        return cls(
            released_per_stage=[0] * index.stage_count,
            last_released_stage={c: -1 for c in index.competitor_ids},
            competitor_order=list(order),
        )

    def copy(self) -> "ReleaseProgress":
        return ReleaseProgress(
            released_per_stage=list(self.released_per_stage),
            last_released_stage=dict(self.last_released_stage),
            competitor_order=list(self.competitor_order),
            current_stage_index=self.current_stage_index,
            total_released=self.total_released,
        )


@dataclass(frozen=True)
class StageProgress:
    """Release count of one stage; percent is measured against its releasable records."""

    stage: int
    released: int
    total: int
    releasable: int

    @property
    def percent(self) -> int:
        return _percent(self.released, self.releasable)

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "released": self.released,
            "total": self.total,
            "releasable": self.releasable,
            "percent": self.percent,
        }


@dataclass
class BatchResult:
    """Records released by one production call plus progress after it."""

    records: List[TimingRecord] = field(default_factory=list)
    completed: bool = False
    total_released: int = 0
    total_records: int = 0
    releasable_records: int = 0
    active_stages: List[StageProgress] = field(default_factory=list)
    competitors_per_stage: Dict[int, List[int]] = field(default_factory=dict)

    @property
    def percent(self) -> int:
        return _percent(self.total_released, self.releasable_records)

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "records": [r.to_dict() for r in self.records],
            "released": self.total_released,
            "total": self.total_records,
            "releasable": self.releasable_records,
            "percent": self.percent,
            "active_stages": [s.to_dict() for s in self.active_stages],
            "competitors_per_stage": {
                str(stage): competitors
                for stage, competitors in self.competitors_per_stage.items()
            },
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReleaseScheduler:
    """State machine and batch algorithm for one replayed event."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utc_now,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock
        self.log = event_log or EventLog()
        self._state = RunState.UNINITIALIZED
        self._index: Optional[DatasetIndex] = None
        self._progress: Optional[ReleaseProgress] = None
        self._params = SimulationParams()
        self._interval_seconds = self._params.effective_interval(0)
        self.event_id: Optional[str] = None
        self.event_name: Optional[str] = None
        self.started_at: Optional[datetime] = None

    # --- read-only views ---

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def index(self) -> Optional[DatasetIndex]:
        return self._index

    @property
    def params(self) -> SimulationParams:
        return self._params

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def progress(self) -> ReleaseProgress:
        """Copy of the current progress (for inspection only)."""
        return self._require_progress().copy()

    @property
    def is_initialized(self) -> bool:
        return self._state is not RunState.UNINITIALIZED

    # --- control operations ---

    def initialize(
        self,
        index: DatasetIndex,
        params: SimulationParams,
        event_id: Optional[str] = None,
        event_name: Optional[str] = None,
    ) -> None:
        """Install a new dataset and parameters; progress starts from zero."""
        if params.seed is not None:
            self._rng = random.Random(params.seed)
        self._index = index
        self._params = params
        self._interval_seconds = params.effective_interval(index.total_records)
        self.event_id = event_id
        self.event_name = event_name
        self.log.clear()
        self._restart()

        self.log.add("INIT", f"Event: {event_name or event_id or '-'}")
        self.log.add(
            "INFO",
            f"{index.total_records} times, {index.competitor_count} competitors, "
            f"{index.stage_count} stages",
        )
        unreachable = index.total_records - index.reachable_records
        if unreachable:
            self.log.add("INFO", f"{unreachable} times follow a missing stage and will not be released")
        batch = (
            f"fixed {params.batch_size}"
            if params.batch_size is not None
            else f"{params.batch_min}-{params.batch_max}"
        )
        self.log.add(
            "CONFIG",
            f"Batch {batch}, overlap {round(params.overlap_threshold * 100)}%, "
            f"interval {self._interval_seconds:g}s",
        )

    def reset(
        self,
        index: Optional[DatasetIndex] = None,
        event_id: Optional[str] = None,
        event_name: Optional[str] = None,
    ) -> None:
        """Zero progress and redraw the competitor order, optionally on a new dataset."""
        if index is None and self._index is None:
            raise InvalidStateError("No dataset loaded; initialize first")
        if index is not None:
            self._index = index
            self.event_id = event_id
            self.event_name = event_name
            self._interval_seconds = self._params.effective_interval(index.total_records)
        self._restart()
        self.log.add("RESET", "Simulation reset")

    def start(self) -> bool:
        """Enter RUNNING. Returns False when already running (no-op)."""
        if self._state is RunState.RUNNING:
            return False
        if self._state not in (RunState.READY, RunState.PAUSED):
            raise InvalidStateError(f"Cannot start from state {self._state.value}")
        resumed = self._state is RunState.PAUSED
        self._state = RunState.RUNNING
        if self.started_at is None:
            self.started_at = self._clock()
        self.log.add("RESUMED" if resumed else "START", "Simulation running")
        return True

    def toggle_pause(self) -> bool:
        """Flip RUNNING <-> PAUSED. Returns True when now paused."""
        if self._state is RunState.RUNNING:
            self._state = RunState.PAUSED
            self.log.add("PAUSE", "Simulation paused")
            return True
        if self._state is RunState.PAUSED:
            self._state = RunState.RUNNING
            self.log.add("RESUMED", "Simulation resumed")
            return False
        raise InvalidStateError(f"Cannot pause from state {self._state.value}")

    def stop(self) -> None:
        if self._state not in (RunState.RUNNING, RunState.PAUSED):
            raise InvalidStateError(f"Cannot stop from state {self._state.value}")
        self._state = RunState.READY
        self.log.add("STOP", "Simulation stopped")

    # --- batch production ---

    def produce_batch(self) -> BatchResult:
        """Release the next batch of a running simulation (periodic tick)."""
        if self._state is not RunState.RUNNING:
            return self._empty_result()
        return self._release()

    def drain(self) -> BatchResult:
        """On-demand pull: release one batch while no automatic run owns the feed."""
        if self._state is not RunState.READY:
            return self._empty_result()
        return self._release()

    def _release(self) -> BatchResult:
        index = self._require_index()
        progress = self._require_progress()

        if progress.total_released >= index.reachable_records:
            self._complete()
            return self._empty_result()

        reachable = index.reachable_per_stage
        last_position = index.stage_count - 1
        while (
            progress.current_stage_index < last_position
            and progress.released_per_stage[progress.current_stage_index]
            >= reachable[progress.current_stage_index]
        ):
            progress.current_stage_index += 1

        main = progress.current_stage_index
        batch_size = self._params.draw_batch_size(self._rng)
        totals = index.total_per_stage
        percent_main = progress.released_per_stage[main] / totals[main]

        targets = [main]
        if main + 1 <= last_position and percent_main >= self._params.overlap_threshold:
            targets.append(main + 1)
        targets = targets[:MAX_ACTIVE_STAGES]

        if len(targets) > 1:
            earmarks = dict(zip(targets, split_batch(batch_size)))
        else:
            earmarks = {main: batch_size}

        records: List[TimingRecord] = []
        per_stage: Dict[int, List[int]] = {}
        # Stages are served in order: a competitor released on the current
        # stage is already eligible for the next one within the same batch.
        for position in targets:
            released_here = self._eligible(position)[: earmarks[position]]
            for competitor in released_here:
                records.append(index.record_for(competitor, position))
                progress.last_released_stage[competitor] = position
                progress.released_per_stage[position] += 1
                progress.total_released += 1
            per_stage[index.stage_at(position).stage] = released_here

        result = BatchResult(
            records=records,
            completed=False,
            total_released=progress.total_released,
            total_records=index.total_records,
            releasable_records=index.reachable_records,
            active_stages=[self._stage_progress(p) for p in targets],
            competitors_per_stage=per_stage,
        )
        self._log_batch(result)
        return result

    def _eligible(self, position: int) -> List[int]:
        index = self._require_index()
        progress = self._require_progress()
        return [
            competitor
            for competitor in progress.competitor_order
            if progress.last_released_stage[competitor] == position - 1
            and index.record_for(competitor, position) is not None
        ]

    def _log_batch(self, result: BatchResult) -> None:
        detail = " | ".join(
            f"PS{stage}: {','.join(str(c) for c in competitors)}"
            for stage, competitors in result.competitors_per_stage.items()
            if competitors
        )
        self.log.add(
            "BATCH",
            f"{len(result.records)} times ({result.percent}%)",
            detail or None,
        )
        if len(result.active_stages) > 1:
            self.log.add(
                "LIVE",
                ", ".join(f"PS{s.stage}({s.percent}%)" for s in result.active_stages),
            )

    # --- status ---

    def status(self) -> dict:
        """Snapshot of state and progress, safe to serialize."""
        if self._index is None or self._progress is None:
            return {
                "state": self._state.value,
                "initialized": False,
                "total_released": 0,
                "total_records": 0,
                "releasable_records": 0,
                "percent": 0,
                "active_stages": [],
                "current_stage": None,
                "estimated_seconds_remaining": None,
            }
        index = self._index
        progress = self._progress
        active = [
            self._stage_progress(pos).to_dict()
            for pos in range(index.stage_count)
            if 0 < progress.released_per_stage[pos] < index.stage_at(pos).reachable
        ]
        return {
            "state": self._state.value,
            "initialized": True,
            "event_id": self.event_id,
            "event_name": self.event_name,
            "total_released": progress.total_released,
            "total_records": index.total_records,
            "releasable_records": index.reachable_records,
            "percent": _percent(progress.total_released, index.reachable_records),
            "active_stages": active,
            "current_stage": index.stage_at(progress.current_stage_index).stage,
            "estimated_seconds_remaining": self._estimated_seconds_remaining(),
            "competitor_count": index.competitor_count,
            "stage_count": index.stage_count,
            "params": self._params.to_dict(),
            "interval_ms": int(self._interval_seconds * 1000),
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }

    def _estimated_seconds_remaining(self) -> float:
        index = self._require_index()
        if self._state is RunState.COMPLETED:
            return 0.0
        remaining = index.reachable_records - self._require_progress().total_released
        if remaining <= 0:
            return 0.0
        batches = math.ceil(remaining / self._params.expected_batch_size)
        return round(batches * self._interval_seconds, 1)

    def _stage_progress(self, position: int) -> StageProgress:
        stage = self._require_index().stage_at(position)
        return StageProgress(
            stage=stage.stage,
            released=self._require_progress().released_per_stage[position],
            total=stage.total,
            releasable=stage.reachable,
        )

    # --- internals ---

    def _restart(self) -> None:
        index = self._require_index()
        order = perturbed_order(index.competitor_ids, self._params.order_variation, self._rng)
        self._progress = ReleaseProgress.fresh(index, order)
        self._state = RunState.READY
        self.started_at = None

    def _complete(self) -> None:
        if self._state is not RunState.COMPLETED:
            self._state = RunState.COMPLETED
            self.log.add("COMPLETED", "Simulation finished")

    def _empty_result(self) -> BatchResult:
        if self._index is None or self._progress is None:
            return BatchResult(completed=self._state is RunState.COMPLETED)
        return BatchResult(
            completed=self._state is RunState.COMPLETED,
            total_released=self._progress.total_released,
            total_records=self._index.total_records,
            releasable_records=self._index.reachable_records,
        )

    def _require_index(self) -> DatasetIndex:
        if self._index is None:
            raise InvalidStateError("Simulation not initialized")
        return self._index

    def _require_progress(self) -> ReleaseProgress:
        if self._progress is None:
            raise InvalidStateError("Simulation not initialized")
        return self._progress
