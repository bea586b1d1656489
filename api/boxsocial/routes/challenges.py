from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.deps import get_current_identity
from ..config import (
    RL_CHALLENGE_CREATE_LIMIT,
    RL_CHALLENGE_RESPOND_LIMIT,
    RL_CHALLENGE_RESULT_LIMIT,
    RL_WINDOW_SECONDS,
)
from ..deps import Identity, get_db
from ..schemas import AddParticipantsRequest, CreateChallengeRequest, RespondRequest, SubmitResultRequest
from ..services import challenges
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_CHALLENGE_CREATE = rate_limit_dependency("challenge_create", RL_CHALLENGE_CREATE_LIMIT, RL_WINDOW_SECONDS)
RL_CHALLENGE_RESPOND = rate_limit_dependency("challenge_respond", RL_CHALLENGE_RESPOND_LIMIT, RL_WINDOW_SECONDS)
RL_CHALLENGE_RESULT = rate_limit_dependency("challenge_result", RL_CHALLENGE_RESULT_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def challenges_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "challenges"}


@router.post("/challenges", dependencies=[RL_CHALLENGE_CREATE])
def create_challenge(
    payload: CreateChallengeRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.create(
        db,
        tenant_id=identity.tenant_id,
        creator_id=identity.member_id,
        title=payload.title,
        start_date=payload.start_date,
        end_date=payload.end_date,
        challenge_type=payload.type,
        invited_ids=payload.invited_ids,
    )


@router.get("/challenges/mine")
def get_my_challenges(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = challenges.list_my_challenges(db, tenant_id=identity.tenant_id, caller_id=identity.member_id)
    return {"challenges": rows, "count": len(rows)}


@router.get("/challenges/invites")
def get_pending_invites(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = challenges.list_pending_invites(db, tenant_id=identity.tenant_id, caller_id=identity.member_id)
    return {"invites": rows, "count": len(rows)}


@router.get("/challenges/{challenge_id}")
def get_challenge(
    challenge_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.get_challenge(db, tenant_id=identity.tenant_id, challenge_id=challenge_id)


@router.post("/challenges/{challenge_id}/respond", dependencies=[RL_CHALLENGE_RESPOND])
def respond_to_challenge(
    challenge_id: str,
    payload: RespondRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.respond(
        db,
        tenant_id=identity.tenant_id,
        challenge_id=challenge_id,
        participant_id=identity.member_id,
        action=payload.action.strip().lower(),
        message=payload.message,
    )


@router.post("/challenges/{challenge_id}/participants")
def add_challenge_participants(
    challenge_id: str,
    payload: AddParticipantsRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.add_participants(
        db,
        tenant_id=identity.tenant_id,
        challenge_id=challenge_id,
        caller_id=identity.member_id,
        new_ids=payload.participant_ids,
    )


@router.delete("/challenges/{challenge_id}")
def delete_challenge(
    challenge_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.delete_challenge(db, tenant_id=identity.tenant_id, challenge_id=challenge_id, caller_id=identity.member_id)


@router.post("/challenges/{challenge_id}/results", dependencies=[RL_CHALLENGE_RESULT])
def submit_challenge_result(
    challenge_id: str,
    payload: SubmitResultRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.submit_result(
        db,
        tenant_id=identity.tenant_id,
        challenge_id=challenge_id,
        participant_id=identity.member_id,
        value=payload.result_value,
    )


@router.post("/challenges/{challenge_id}/results/compute", dependencies=[RL_CHALLENGE_RESULT])
def compute_challenge_result(
    challenge_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.compute_calories_result(
        db,
        tenant_id=identity.tenant_id,
        challenge_id=challenge_id,
        participant_id=identity.member_id,
    )


@router.get("/challenges/{challenge_id}/ranking")
def get_challenge_ranking(
    challenge_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return challenges.challenge_ranking(db, tenant_id=identity.tenant_id, challenge_id=challenge_id)
