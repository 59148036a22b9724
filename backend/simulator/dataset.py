"""
Read-only projection of one event's timing records.

Records are grouped by competitor and by stage; stages get dense 0-based
positions from the ascending order of their identifiers. Built once per
loaded event and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from simulator.errors import EmptyDatasetError


@dataclass(frozen=True)
class TimingRecord:
    """One competitor's result for one stage. Identity is (competitor, stage)."""

    competitor: int
    stage: int
    time_seconds: float
    penalty_seconds: float = 0.0
    pilot_id: Optional[str] = None
    stage_id: Optional[str] = None
    surname: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    bike: Optional[str] = None
    stage_name: Optional[str] = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.competitor, self.stage)

    def to_dict(self) -> dict:
        return {
            "competitor": self.competitor,
            "stage": self.stage,
            "time_seconds": self.time_seconds,
            "penalty_seconds": self.penalty_seconds,
            "pilot_id": self.pilot_id,
            "stage_id": self.stage_id,
            "surname": self.surname,
            "name": self.name,
            "category": self.category,
            "bike": self.bike,
            "stage_name": self.stage_name,
        }


@dataclass(frozen=True)
class Stage:
    """One ordered leg of the event.

    ``reachable`` counts the records whose competitor also has a time on every
    earlier stage; a record after a gap can never be released.
    """

    stage: int
    position: int
    total: int
    reachable: int

    @property
    def label(self) -> str:
        return f"PS{self.stage}"


@dataclass
class Competitor:
    """A participant and its records indexed by stage position (None = no time)."""

    competitor: int
    records: List[Optional[TimingRecord]] = field(default_factory=list)

    def record_at(self, position: int) -> Optional[TimingRecord]:
        if 0 <= position < len(self.records):
            return self.records[position]
        return None

    @property
    def record_count(self) -> int:
        return sum(1 for r in self.records if r is not None)


class DatasetIndex:
    """Stage and competitor groupings of a flat list of TimingRecords."""

    def __init__(
        self,
        stages: List[Stage],
        competitors: Dict[int, Competitor],
        total_records: int,
    ) -> None:
        self._stages = stages
        self._competitors = competitors
        self._total_records = total_records
        self._position_by_stage = {s.stage: s.position for s in stages}

    @classmethod
    def build(cls, records: Iterable[TimingRecord]) -> "DatasetIndex":
        """Group records and assign stage positions. Raises EmptyDatasetError if empty."""
        records = list(records)
        if not records:
            raise EmptyDatasetError("No timing records found for this event")

        seen: set[tuple[int, int]] = set()
        for record in records:
            if record.key in seen:
                raise ValueError(
                    f"Duplicate timing record for competitor {record.competitor} "
                    f"on stage {record.stage}"
                )
            seen.add(record.key)

        stage_ids = sorted({r.stage for r in records})
        position_by_stage = {stage_id: pos for pos, stage_id in enumerate(stage_ids)}
        totals = [0] * len(stage_ids)

        competitors: Dict[int, Competitor] = {}
        for record in records:
            pos = position_by_stage[record.stage]
            comp = competitors.get(record.competitor)
            if comp is None:
                comp = Competitor(record.competitor, [None] * len(stage_ids))
                competitors[record.competitor] = comp
            comp.records[pos] = record
            totals[pos] += 1

        reachable = [0] * len(stage_ids)
        for comp in competitors.values():
            for pos, record in enumerate(comp.records):
                if record is None:
                    break
                reachable[pos] += 1

        stages = [
            Stage(stage=stage_id, position=pos, total=totals[pos], reachable=reachable[pos])
            for pos, stage_id in enumerate(stage_ids)
        ]
        ordered = {c: competitors[c] for c in sorted(competitors)}
        return cls(stages, ordered, len(records))

    @property
    def stages(self) -> Sequence[Stage]:
        return tuple(self._stages)

    @property
    def stage_count(self) -> int:
        return len(self._stages)

    @property
    def total_records(self) -> int:
        return self._total_records

    @property
    def total_per_stage(self) -> List[int]:
        return [s.total for s in self._stages]

    @property
    def reachable_per_stage(self) -> List[int]:
        return [s.reachable for s in self._stages]

    @property
    def reachable_records(self) -> int:
        return sum(s.reachable for s in self._stages)

    @property
    def competitor_ids(self) -> List[int]:
        """Competitor identifiers in natural (ascending) order."""
        return list(self._competitors)

    @property
    def competitor_count(self) -> int:
        return len(self._competitors)

    def competitor(self, competitor_id: int) -> Competitor:
        return self._competitors[competitor_id]

    def record_for(self, competitor_id: int, position: int) -> Optional[TimingRecord]:
        comp = self._competitors.get(competitor_id)
        if comp is None:
            return None
        return comp.record_at(position)

    def stage_at(self, position: int) -> Stage:
        return self._stages[position]

    def position_of(self, stage_id: int) -> int:
        return self._position_by_stage[stage_id]
