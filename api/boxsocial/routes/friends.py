from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.deps import get_current_identity
from ..config import RL_FRIEND_REQUEST_LIMIT, RL_WINDOW_SECONDS
from ..deps import Identity, get_db
from ..schemas import FriendRequestCreate, FriendRespondRequest
from ..services import friendship
from ..services.rate_limit import rate_limit_dependency
from ..services.tenancy import require_member_in_tenant

router = APIRouter()
scaffold_router = APIRouter()

RL_FRIEND_REQUEST = rate_limit_dependency("friend_request", RL_FRIEND_REQUEST_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def friends_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "friends"}


@router.post("/friends/requests", dependencies=[RL_FRIEND_REQUEST])
def send_friend_request(
    payload: FriendRequestCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return friendship.request(
        db,
        tenant_id=identity.tenant_id,
        requester_id=identity.member_id,
        target_id=payload.target_id.strip(),
    )


@router.post("/friends/requests/{requester_id}/respond")
def respond_friend_request(
    requester_id: str,
    payload: FriendRespondRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return friendship.respond(
        db,
        tenant_id=identity.tenant_id,
        caller_id=identity.member_id,
        requester_id=requester_id,
        target_id=identity.member_id,
        action=payload.action.strip().lower(),
    )


@router.get("/friends")
def get_friends(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    friends = friendship.list_friends(db, tenant_id=identity.tenant_id, caller_id=identity.member_id)
    return {"friends": friends, "count": len(friends)}


@router.get("/friends/requests")
def get_friend_requests(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> dict[str, Any]:
    return friendship.list_pending_requests(db, tenant_id=identity.tenant_id, caller_id=identity.member_id)


@router.get("/friends/{other_id}")
def get_friendship(
    other_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    require_member_in_tenant(db, identity.tenant_id, other_id)
    friends = friendship.is_friend(db, tenant_id=identity.tenant_id, member_a=identity.member_id, member_b=other_id)
    return {"member_id": other_id, "is_friend": friends}
