from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Protocol


class RankingType(Protocol):
    higher_is_better: bool


@dataclass(frozen=True)
class RankRecord:
    participant_id: str
    value: float | None
    recorded_at: datetime | None = None
    data: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def missing(self) -> bool:
        return self.value is None or (isinstance(self.value, float) and math.isnan(self.value))


@dataclass(frozen=True)
class RankedEntry:
    position: int
    record: RankRecord

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.record.data,
            "position": self.position,
            "participant_id": self.record.participant_id,
            "value": None if self.record.missing else self.record.value,
            "recorded_at": self.record.recorded_at,
        }


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def sort_key(record: RankRecord, higher_is_better: bool) -> tuple:
    """Total order: present values first, best value, earliest submission, participant id."""
    if record.missing:
        directional = 0.0
    else:
        directional = -float(record.value) if higher_is_better else float(record.value)
    no_timestamp = record.recorded_at is None
    timestamp = 0.0 if no_timestamp else _timestamp(record.recorded_at)
    return (record.missing, directional, no_timestamp, timestamp, str(record.participant_id))


def rank(records: Iterable[RankRecord], ranking_type: RankingType) -> list[RankedEntry]:
    ordered = sorted(records, key=lambda r: sort_key(r, ranking_type.higher_is_better))
    return [RankedEntry(position=i, record=r) for i, r in enumerate(ordered, start=1)]
