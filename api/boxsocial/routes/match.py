from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.deps import get_current_identity
from ..config import CANDIDATE_LIMIT_DEFAULT, CANDIDATE_LIMIT_MAX, RL_MATCH_ACTION_LIMIT, RL_WINDOW_SECONDS
from ..deps import Identity, clamp_limit, get_db
from ..services import matching
from ..services.rate_limit import rate_limit_dependency
from ..services.tenancy import require_member_in_tenant

router = APIRouter()
scaffold_router = APIRouter()

RL_MATCH_ACTION = rate_limit_dependency("match_action", RL_MATCH_ACTION_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def match_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "match"}


@router.get("/matches/candidates")
def get_candidates(
    limit: int | None = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    limit = clamp_limit(limit, CANDIDATE_LIMIT_DEFAULT, CANDIDATE_LIMIT_MAX)
    candidates = matching.list_candidates(db, tenant_id=identity.tenant_id, caller_id=identity.member_id, limit=limit)
    return {"candidates": candidates, "count": len(candidates)}


@router.get("/matches/mutual")
def get_mutual_matches(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    matches = matching.list_mutual_matches(db, tenant_id=identity.tenant_id, caller_id=identity.member_id)
    return {"matches": matches, "count": len(matches)}


@router.get("/matches/{target_id}/status")
def get_match_status(
    target_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    require_member_in_tenant(db, identity.tenant_id, target_id)
    status = matching.get_match_status(db, tenant_id=identity.tenant_id, member_a=identity.member_id, member_b=target_id)
    return {"target_id": target_id, **status}


@router.post("/matches/{target_id}/like", dependencies=[RL_MATCH_ACTION])
def like(target_id: str, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    return matching.record_action(
        db,
        tenant_id=identity.tenant_id,
        actor_id=identity.member_id,
        target_id=target_id,
        action="like",
    )


@router.post("/matches/{target_id}/reject", dependencies=[RL_MATCH_ACTION])
def reject(target_id: str, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    return matching.record_action(
        db,
        tenant_id=identity.tenant_id,
        actor_id=identity.member_id,
        target_id=target_id,
        action="reject",
    )
