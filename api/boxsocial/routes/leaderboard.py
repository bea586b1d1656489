from datetime import date
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.deps import get_current_identity
from ..config import LEADERBOARD_LIMIT_DEFAULT, LEADERBOARD_LIMIT_MAX, TOP_CALORIES_LIMIT
from ..deps import Identity, clamp_limit, get_db
from ..services import leaderboard

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def leaderboard_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "leaderboard"}


@router.get("/leaderboards/weekly")
def get_weekly_leaderboard(
    metric: str | None = None,
    gender: str | None = None,
    limit: int | None = None,
    week_start: date | None = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return leaderboard.weekly_leaderboard(
        db,
        tenant_id=identity.tenant_id,
        metric=metric,
        gender=(gender or "").strip() or None,
        limit=clamp_limit(limit, LEADERBOARD_LIMIT_DEFAULT, LEADERBOARD_LIMIT_MAX),
        week_start=week_start,
    )


@router.get("/leaderboards/top-calories")
def get_top_calories(
    days: int = 7,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return leaderboard.top_calories(db, tenant_id=identity.tenant_id, days=days, limit=TOP_CALORIES_LIMIT)
