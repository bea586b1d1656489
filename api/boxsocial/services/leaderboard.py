from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from ..errors import InvalidArgument
from .ledger import LeaderboardMetric, aggregate_by_participant
from .ranking import RankRecord, rank
from .tenancy import tenant_timezone

logger = logging.getLogger(__name__)

TOP_CALORIES_DAYS = (1, 3, 7)


def get_week_start_date(now: datetime, tz: ZoneInfo) -> date:
    local_now = now.astimezone(tz)
    return local_now.date() - timedelta(days=local_now.weekday())


def local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def week_window(week_start: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Monday 00:00 inclusive to the following Monday 00:00 exclusive, local time."""
    return local_midnight(week_start, tz), local_midnight(week_start + timedelta(days=7), tz)


def _ranked_rows(rows: list[dict[str, Any]], metric: LeaderboardMetric, limit: int) -> list[dict[str, Any]]:
    records = [
        RankRecord(
            participant_id=str(r["id"]),
            value=r["value"],
            data={"name": r.get("name"), "gender": r.get("gender"), "photo_url": r.get("photo_url"), "sessions": r.get("sessions")},
        )
        for r in rows
    ]
    return [entry.to_dict() for entry in rank(records, metric)[:limit]]


def weekly_leaderboard(
    db,
    *,
    tenant_id: str,
    metric: str | None = None,
    gender: str | None = None,
    limit: int = 10,
    week_start: date | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    chosen = LeaderboardMetric.parse(metric)
    tz = tenant_timezone(db, tenant_id)
    if week_start is None:
        week_start = get_week_start_date(now or datetime.now(timezone.utc), tz)
    elif week_start.weekday() != 0:
        raise InvalidArgument("week_start must be a Monday")

    start, end = week_window(week_start, tz)
    rows = aggregate_by_participant(db, tenant_id=tenant_id, metric=chosen, start=start, end=end, gender=gender)
    logger.debug("[LEADERBOARD] weekly tenant_id=%s metric=%s week_start=%s rows=%s", tenant_id, chosen.value, week_start, len(rows))
    return {
        "week_start": week_start.isoformat(),
        "week_end": (week_start + timedelta(days=6)).isoformat(),
        "timezone": tz.key,
        "metric": chosen.value,
        "gender": gender,
        "rankings": _ranked_rows(rows, chosen, limit),
    }


def top_calories(db, *, tenant_id: str, days: int, limit: int, now: datetime | None = None) -> dict[str, Any]:
    if days not in TOP_CALORIES_DAYS:
        raise InvalidArgument("days must be one of: 1, 3, 7")
    end = now or datetime.now(timezone.utc)
    start = end - timedelta(days=days)
    rows = aggregate_by_participant(db, tenant_id=tenant_id, metric=LeaderboardMetric.CALORIES, start=start, end=end)
    return {
        "days": days,
        "since": start,
        "rankings": _ranked_rows(rows, LeaderboardMetric.CALORIES, limit),
    }
