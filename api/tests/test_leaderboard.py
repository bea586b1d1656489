from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from boxsocial.errors import InvalidArgument
from boxsocial.services import leaderboard
from boxsocial.services.ledger import LeaderboardMetric, sum_metric

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
WEEK = date(2024, 1, 1)


def _local(*args) -> datetime:
    return datetime(*args, tzinfo=SAO_PAULO).astimezone(timezone.utc)


def _weekly(db, **kwargs):
    kwargs.setdefault("week_start", WEEK)
    return leaderboard.weekly_leaderboard(db, tenant_id="tenant-a", **kwargs)


def test_week_start_is_local_monday():
    # Monday 01:30 UTC is still Sunday evening in Sao Paulo.
    now = datetime(2024, 1, 8, 1, 30, tzinfo=timezone.utc)
    assert leaderboard.get_week_start_date(now, SAO_PAULO) == date(2024, 1, 1)
    assert leaderboard.get_week_start_date(now, ZoneInfo("UTC")) == date(2024, 1, 8)


def test_week_window_boundaries(db, world, ledger):
    ledger("tenant-a", _local(2024, 1, 1, 0, 0, 0), {"ana": {"burn_points": 10}})
    ledger("tenant-a", _local(2024, 1, 7, 23, 59, 59), {"ana": {"burn_points": 5}})
    ledger("tenant-a", _local(2024, 1, 8, 0, 0, 0), {"ana": {"burn_points": 1000}})
    ledger("tenant-a", _local(2023, 12, 31, 23, 59, 59), {"ana": {"burn_points": 1000}})

    board = _weekly(db)
    assert board["week_start"] == "2024-01-01"
    assert board["week_end"] == "2024-01-07"
    assert board["timezone"] == "America/Sao_Paulo"
    assert [(r["participant_id"], r["value"]) for r in board["rankings"]] == [("ana", 15.0)]

    start, end = leaderboard.week_window(WEEK, SAO_PAULO)
    assert sum_metric(db, "ana", "burn_points", start, end) == 15.0


def test_default_metric_is_burn_points_and_ranks_descending(db, world, ledger):
    ledger(
        "tenant-a",
        _local(2024, 1, 2, 7, 0),
        {
            "ana": {"burn_points": 30, "calories_total": 400},
            "bruno": {"burn_points": 45, "calories_total": 380},
            "carla": {"burn_points": 30, "calories_total": 500},
        },
    )
    board = _weekly(db)
    assert board["metric"] == "burn_points"
    assert [r["participant_id"] for r in board["rankings"]] == ["bruno", "ana", "carla"]
    assert [r["position"] for r in board["rankings"]] == [1, 2, 3]

    by_calories = _weekly(db, metric="calories")
    assert [r["participant_id"] for r in by_calories["rankings"]] == ["carla", "ana", "bruno"]


def test_sessions_accumulate_and_max_hr_takes_peak(db, world, ledger):
    ledger("tenant-a", _local(2024, 1, 2, 7, 0), {"ana": {"trimp_total": 40, "max_hr_reached": 181}})
    ledger("tenant-a", _local(2024, 1, 4, 7, 0), {"ana": {"trimp_total": 35, "max_hr_reached": 176}})

    trimp = _weekly(db, metric="trimp")["rankings"][0]
    assert trimp["value"] == 75.0
    assert trimp["sessions"] == 2
    assert _weekly(db, metric="max_hr")["rankings"][0]["value"] == 181.0


def test_gender_filter_and_limit(db, world, ledger):
    ledger(
        "tenant-a",
        _local(2024, 1, 3, 18, 0),
        {
            "ana": {"burn_points": 20},
            "bruno": {"burn_points": 50},
            "carla": {"burn_points": 25},
            "diego": {"burn_points": 10},
        },
    )
    women = _weekly(db, gender="Female")
    assert [r["participant_id"] for r in women["rankings"]] == ["carla", "ana"]
    assert [r["participant_id"] for r in _weekly(db, limit=2)["rankings"]] == ["bruno", "carla"]


def test_leaderboard_is_tenant_scoped(db, world, ledger):
    ledger("tenant-b", _local(2024, 1, 2, 7, 0), {"eva": {"burn_points": 99}})
    ledger("tenant-a", _local(2024, 1, 2, 7, 0), {"ana": {"burn_points": 1}})
    assert [r["participant_id"] for r in _weekly(db)["rankings"]] == ["ana"]


def test_week_start_must_be_monday(db, world):
    with pytest.raises(InvalidArgument):
        _weekly(db, week_start=date(2024, 1, 3))


def test_unknown_metric_is_invalid(db, world):
    with pytest.raises(InvalidArgument):
        _weekly(db, metric="steps")


def test_metric_parse_defaults_and_normalizes():
    assert LeaderboardMetric.parse(None) is LeaderboardMetric.BURN_POINTS
    assert LeaderboardMetric.parse(" VO2 ") is LeaderboardMetric.VO2


def test_top_calories_rolling_window(db, world, ledger):
    now = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
    ledger("tenant-a", now - timedelta(hours=20), {"ana": {"calories_total": 300}, "bruno": {"calories_total": 200}})
    ledger("tenant-a", now - timedelta(days=2), {"bruno": {"calories_total": 250}})
    ledger("tenant-a", now - timedelta(days=6), {"carla": {"calories_total": 900}})

    one_day = leaderboard.top_calories(db, tenant_id="tenant-a", days=1, limit=5, now=now)
    assert [r["participant_id"] for r in one_day["rankings"]] == ["ana", "bruno"]

    three_days = leaderboard.top_calories(db, tenant_id="tenant-a", days=3, limit=5, now=now)
    assert [(r["participant_id"], r["value"]) for r in three_days["rankings"]] == [("bruno", 450.0), ("ana", 300.0)]

    week = leaderboard.top_calories(db, tenant_id="tenant-a", days=7, limit=1, now=now)
    assert [r["participant_id"] for r in week["rankings"]] == ["carla"]


def test_top_calories_rejects_other_windows(db, world):
    with pytest.raises(InvalidArgument):
        leaderboard.top_calories(db, tenant_id="tenant-a", days=5, limit=5)
