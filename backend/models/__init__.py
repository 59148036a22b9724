"""SQLAlchemy models for events, their stage times and the released live feed."""

from .base import Base
from .event import Event
from .pilot import Pilot
from .released_time import ReleasedTime
from .special_stage import SpecialStage
from .stage_time import StageTime

__all__ = [
    "Base",
    "Event",
    "Pilot",
    "ReleasedTime",
    "SpecialStage",
    "StageTime",
]
