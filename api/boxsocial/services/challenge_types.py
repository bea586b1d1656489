from __future__ import annotations

from enum import Enum


class ChallengeType(str, Enum):
    """Supported challenge formats.

    Each member carries its ranking direction, and for ledger-backed types the
    ledger metric and rolling window (``None`` means the whole challenge
    period). Adding a format is a one-line change here.
    """

    CALORIES = ("calories", True, "calories", None)
    CALORIES_WEEK = ("calories_week", True, "calories", 7)
    CALORIES_MONTH = ("calories_month", True, "calories", 30)
    MAX_REPS = ("max_reps", True, None, None)
    AMRAP = ("amrap", True, None, None)
    FOR_TIME = ("for_time", False, None, None)
    MURPH = ("murph", False, None, None)

    def __new__(cls, value: str, higher_is_better: bool, ledger_metric: str | None, window_days: int | None):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.higher_is_better = higher_is_better
        obj.ledger_metric = ledger_metric
        obj.window_days = window_days
        return obj

    @property
    def ledger_backed(self) -> bool:
        return self.ledger_metric is not None

    @classmethod
    def parse(cls, raw: str | None) -> "ChallengeType | None":
        value = str(raw or "").strip().lower()
        for member in cls:
            if member.value == value:
                return member
        return None


SUPPORTED_TYPES = [t.value for t in ChallengeType]
