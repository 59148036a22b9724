from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class StageTime(Base):
    """Recorded result of one pilot on one stage (the dataset being replayed)."""

    __tablename__ = "stage_times"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pilot_id: Mapped[str] = mapped_column(
        ForeignKey("pilots.id"), nullable=False, index=True
    )
    stage_id: Mapped[str] = mapped_column(
        ForeignKey("special_stages.id"), nullable=False, index=True
    )
    time_seconds: Mapped[float] = mapped_column(Float, nullable=False)
    penalty_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (
        UniqueConstraint("pilot_id", "stage_id", name="uq_stage_time_pilot_stage"),
    )
