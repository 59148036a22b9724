"""
Run parameters for the release scheduler, with the clamping applied to
caller-supplied options.
"""

from __future__ import annotations

import math
import random
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

BATCH_LIMITS = (3, 50)
INTERVAL_LIMITS = (1.0, 90.0)
DEFAULT_INTERVAL_SECONDS = 5.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _clamp_batch(value: Any) -> int:
    return int(_clamp(int(value), *BATCH_LIMITS))


def _clamp_interval(value: Any) -> float:
    return float(_clamp(float(value), *INTERVAL_LIMITS))


@dataclass(frozen=True)
class SimulationParams:
    """Batch bounds, tick period and overlap policy for one run.

    ``batch_size`` switches to the fixed-size mode; otherwise each tick draws
    uniformly in ``[batch_min, batch_max]``. ``interval_seconds`` of None means
    "derive from duration_minutes", falling back to the default period.
    """

    batch_min: int = 30
    batch_max: int = 50
    batch_size: Optional[int] = None
    interval_seconds: Optional[float] = DEFAULT_INTERVAL_SECONDS
    overlap_threshold: float = 0.7
    order_variation: float = 20.0
    duration_minutes: Optional[float] = None
    seed: Optional[int] = None

    @classmethod
    def from_options(
        cls,
        options: Optional[Mapping[str, Any]] = None,
        base: Optional["SimulationParams"] = None,
    ) -> "SimulationParams":
        """Merge caller options (None values ignored) over ``base`` and clamp."""
        base = base or cls()
        opts = {k: v for k, v in (options or {}).items() if v is not None}

        batch_min = _clamp_batch(opts.get("batch_min", base.batch_min))
        batch_max = _clamp_batch(opts.get("batch_max", base.batch_max))
        if batch_min > batch_max:
            batch_min, batch_max = batch_max, batch_min

        batch_size = opts.get("batch_size", base.batch_size)
        if batch_size is not None:
            batch_size = _clamp_batch(batch_size)

        duration = opts.get("duration_minutes", base.duration_minutes)
        if duration is not None:
            duration = max(float(duration), 0.0) or None

        if "interval_seconds" in opts:
            interval: Optional[float] = _clamp_interval(opts["interval_seconds"])
        elif "duration_minutes" in opts:
            interval = None
        else:
            interval = base.interval_seconds

        overlap = float(_clamp(float(opts.get("overlap_threshold", base.overlap_threshold)), 0.0, 1.0))
        variation = max(float(opts.get("order_variation", base.order_variation)), 0.0)
        seed = opts.get("seed", base.seed)

        return cls(
            batch_min=batch_min,
            batch_max=batch_max,
            batch_size=batch_size,
            interval_seconds=interval,
            overlap_threshold=overlap,
            order_variation=variation,
            duration_minutes=duration,
            seed=int(seed) if seed is not None else None,
        )

    @property
    def expected_batch_size(self) -> float:
        if self.batch_size is not None:
            return float(self.batch_size)
        return (self.batch_min + self.batch_max) / 2

    def draw_batch_size(self, rng: random.Random) -> int:
        if self.batch_size is not None:
            return self.batch_size
        return rng.randint(self.batch_min, self.batch_max)

    def effective_interval(self, total_records: int) -> float:
        """Tick period in seconds; spreads the dataset over duration_minutes when no period was given."""
        if self.interval_seconds is not None:
            return self.interval_seconds
        if self.duration_minutes and total_records > 0:
            batches = math.ceil(total_records / self.expected_batch_size)
            return _clamp_interval(self.duration_minutes * 60 / batches)
        return DEFAULT_INTERVAL_SECONDS

    def to_dict(self) -> dict:
        return asdict(self)
