from __future__ import annotations

from models.event import Event
from .base import BaseRepository


class EventRepository(BaseRepository[Event]):
    """Repository for Event entities."""

    model = Event
