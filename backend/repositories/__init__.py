"""Repository layer for DB access only (CRUD + simple queries).

All repositories accept an AsyncSession explicitly and never commit; the
caller owning the session (see simulator.store) commits.
"""

from .base import BaseRepository
from .event_repo import EventRepository
from .released_time_repo import ReleasedTimeRepository
from .stage_time_repo import StageTimeRepository

__all__ = [
    "BaseRepository",
    "EventRepository",
    "ReleasedTimeRepository",
    "StageTimeRepository",
]
