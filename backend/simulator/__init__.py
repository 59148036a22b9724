"""Progressive replay of recorded stage times as a live timing feed."""

from .dataset import Competitor, DatasetIndex, Stage, TimingRecord
from .errors import (
    EmptyDatasetError,
    InvalidStateError,
    NotFoundError,
    PersistError,
    SimulatorError,
)
from .params import SimulationParams
from .scheduler import (
    MAIN_STAGE_SHARE,
    MAX_ACTIVE_STAGES,
    BatchResult,
    ReleaseProgress,
    ReleaseScheduler,
    RunState,
    perturbed_order,
    split_batch,
)

__all__ = [
    "BatchResult",
    "Competitor",
    "DatasetIndex",
    "EmptyDatasetError",
    "InvalidStateError",
    "MAIN_STAGE_SHARE",
    "MAX_ACTIVE_STAGES",
    "NotFoundError",
    "PersistError",
    "ReleaseProgress",
    "ReleaseScheduler",
    "RunState",
    "SimulationParams",
    "SimulatorError",
    "Stage",
    "TimingRecord",
    "perturbed_order",
    "split_batch",
]
