"""
Read-only access to the performance ledger.

Workout ingestion writes one ``session_participant`` row per member per
session; this module only aggregates those rows. Ranges are half-open
``[start, end)`` on ``workout_session.date_start``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import func, select

from ..errors import InvalidArgument
from ..models import Member, SessionParticipant, WorkoutSession


class LeaderboardMetric(str, Enum):
    BURN_POINTS = "burn_points"
    CALORIES = "calories"
    VO2 = "vo2"
    TRIMP = "trimp"
    MAX_HR = "max_hr"
    EPOC = "epoc"

    @property
    def higher_is_better(self) -> bool:
        return True

    @classmethod
    def parse(cls, raw: str | None) -> "LeaderboardMetric":
        value = str(raw or cls.BURN_POINTS.value).strip().lower()
        for member in cls:
            if member.value == value:
                return member
        raise InvalidArgument(f"metric must be one of: {', '.join(m.value for m in cls)}")


# Peak heart rate is a maximum over the window; every other metric accumulates.
_METRIC_AGGREGATES = {
    "burn_points": (SessionParticipant.burn_points, func.sum),
    "calories": (SessionParticipant.calories_total, func.sum),
    "vo2": (SessionParticipant.vo2_time_seconds, func.sum),
    "trimp": (SessionParticipant.trimp_total, func.sum),
    "max_hr": (SessionParticipant.max_hr_reached, func.max),
    "epoc": (SessionParticipant.epoc_estimated, func.sum),
}


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _aggregate(metric: str):
    key = metric.value if isinstance(metric, Enum) else str(metric)
    if key not in _METRIC_AGGREGATES:
        raise InvalidArgument(f"Unsupported ledger metric: {key}")
    column, agg = _METRIC_AGGREGATES[key]
    return func.coalesce(agg(column), 0)


def sum_metric(db, participant_id: str, metric: str, start: datetime, end: datetime) -> float:
    value = db.execute(
        select(_aggregate(metric))
        .select_from(SessionParticipant)
        .join(WorkoutSession, WorkoutSession.id == SessionParticipant.session_id)
        .where(
            SessionParticipant.participant_id == participant_id,
            WorkoutSession.date_start >= to_utc(start),
            WorkoutSession.date_start < to_utc(end),
        )
    ).scalar()
    return float(value or 0)


def aggregate_by_participant(
    db,
    *,
    tenant_id: str,
    metric: str,
    start: datetime,
    end: datetime,
    gender: str | None = None,
) -> list[dict[str, Any]]:
    """One row per member of the tenant with ledger activity in the range."""
    value = _aggregate(metric).label("value")
    stmt = (
        select(
            Member.id,
            Member.name,
            Member.gender,
            Member.photo_url,
            value,
            func.count(func.distinct(SessionParticipant.session_id)).label("sessions"),
        )
        .select_from(SessionParticipant)
        .join(WorkoutSession, WorkoutSession.id == SessionParticipant.session_id)
        .join(Member, Member.id == SessionParticipant.participant_id)
        .where(
            Member.tenant_id == tenant_id,
            WorkoutSession.date_start >= to_utc(start),
            WorkoutSession.date_start < to_utc(end),
        )
        .group_by(Member.id, Member.name, Member.gender, Member.photo_url)
    )
    if gender:
        stmt = stmt.where(func.lower(Member.gender) == gender.strip().lower())
    rows = db.execute(stmt).mappings().all()
    return [{**dict(r), "value": float(r["value"] or 0)} for r in rows]


def sum_metric_by_participant(
    db,
    participant_ids: list[str],
    metric: str,
    start: datetime,
    end: datetime,
) -> dict[str, float]:
    """Metric totals keyed by participant; members without activity read 0."""
    totals = {pid: 0.0 for pid in participant_ids}
    if not totals:
        return totals
    rows = db.execute(
        select(SessionParticipant.participant_id, _aggregate(metric).label("value"))
        .select_from(SessionParticipant)
        .join(WorkoutSession, WorkoutSession.id == SessionParticipant.session_id)
        .where(
            SessionParticipant.participant_id.in_(list(totals)),
            WorkoutSession.date_start >= to_utc(start),
            WorkoutSession.date_start < to_utc(end),
        )
        .group_by(SessionParticipant.participant_id)
    ).all()
    for participant_id, value in rows:
        totals[str(participant_id)] = float(value or 0)
    return totals
