from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Pilot(Base):
    """Competitor entered in an event, identified on track by race number."""

    __tablename__ = "pilots"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id"), nullable=False, index=True
    )
    race_number: Mapped[int] = mapped_column(Integer, nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    bike: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    club: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    nation: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "race_number", name="uq_pilot_event_number"),
    )
