from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ReleasedTime(Base):
    """A stage time already emitted on the live feed (latest write wins per pilot/stage)."""

    __tablename__ = "released_times"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id"), nullable=False, index=True
    )
    pilot_id: Mapped[str] = mapped_column(ForeignKey("pilots.id"), nullable=False)
    stage_id: Mapped[str] = mapped_column(ForeignKey("special_stages.id"), nullable=False)
    time_seconds: Mapped[float] = mapped_column(Float, nullable=False)
    penalty_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    released_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("pilot_id", "stage_id", name="uq_released_time_pilot_stage"),
    )
