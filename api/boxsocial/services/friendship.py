from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import and_, delete, or_, select, update

from ..database import lock_key, transaction, upsert
from ..errors import Conflict, InvalidArgument, NotFound
from ..models import FriendEdge
from .access import require_respondent
from .events import emit_social_event
from .matching import canonical_pair
from .tenancy import members_by_id, require_member_in_tenant

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _either_orientation(a: str, b: str):
    return or_(
        and_(FriendEdge.requester_id == a, FriendEdge.target_id == b),
        and_(FriendEdge.requester_id == b, FriendEdge.target_id == a),
    )


def _get_edge(db, tenant_id: str, requester_id: str, target_id: str) -> dict[str, Any] | None:
    row = db.execute(
        select(FriendEdge.__table__).where(
            FriendEdge.tenant_id == tenant_id,
            FriendEdge.requester_id == requester_id,
            FriendEdge.target_id == target_id,
        )
    ).mappings().first()
    return dict(row) if row else None


def request(db, *, tenant_id: str, requester_id: str, target_id: str, now: datetime | None = None) -> dict[str, Any]:
    if str(requester_id) == str(target_id):
        raise InvalidArgument("You cannot send a friend request to yourself")
    now = now or _now_utc()

    with transaction(db):
        require_member_in_tenant(db, tenant_id, target_id)
        lock_key(db, "friend", *canonical_pair(requester_id, target_id))

        accepted = db.execute(
            select(FriendEdge.id).where(
                FriendEdge.tenant_id == tenant_id,
                FriendEdge.status == "accepted",
                _either_orientation(requester_id, target_id),
            )
        ).first()
        if accepted:
            outcome = "already_friends"
        elif (_get_edge(db, tenant_id, target_id, requester_id) or {}).get("status") == "pending":
            # Both sides asked; the earlier request is accepted rather than duplicated.
            db.execute(
                update(FriendEdge)
                .where(FriendEdge.requester_id == target_id, FriendEdge.target_id == requester_id)
                .values(status="accepted", updated_at=now)
            )
            outcome = "accepted"
        else:
            stmt = upsert(db, FriendEdge.__table__).values(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                requester_id=requester_id,
                target_id=target_id,
                status="pending",
                created_at=now,
                updated_at=now,
            )
            db.execute(stmt.on_conflict_do_nothing(index_elements=["requester_id", "target_id"]))
            outcome = "pending"

    logger.info("[FRIENDS] request requester_id=%s target_id=%s outcome=%s", requester_id, target_id, outcome)
    if outcome == "pending":
        emit_social_event(db, tenant_id=tenant_id, event_type="friend_request", actor_id=requester_id, target_id=target_id)
    elif outcome == "accepted":
        emit_social_event(db, tenant_id=tenant_id, event_type="friend_accepted", actor_id=requester_id, target_id=target_id)
    return {
        "requester_id": requester_id,
        "target_id": target_id,
        "status": "accepted" if outcome in ("accepted", "already_friends") else "pending",
        "already_friends": outcome == "already_friends",
    }


def respond(
    db,
    *,
    tenant_id: str,
    caller_id: str,
    requester_id: str,
    target_id: str,
    action: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    if action not in ("accept", "decline"):
        raise InvalidArgument("action must be one of: accept, decline")
    now = now or _now_utc()

    with transaction(db):
        lock_key(db, "friend", *canonical_pair(requester_id, target_id))
        edge = _get_edge(db, tenant_id, requester_id, target_id)
        if not edge:
            raise NotFound("Friend request not found")
        require_respondent(edge, caller_id)

        if edge["status"] == "accepted":
            if action == "decline":
                raise Conflict("Friend request was already accepted")
            status = "accepted"
        elif action == "accept":
            db.execute(update(FriendEdge).where(FriendEdge.id == edge["id"]).values(status="accepted", updated_at=now))
            status = "accepted"
        else:
            db.execute(delete(FriendEdge).where(FriendEdge.id == edge["id"]))
            status = "declined"

    logger.info("[FRIENDS] respond requester_id=%s target_id=%s action=%s status=%s", requester_id, target_id, action, status)
    if status == "accepted" and edge["status"] != "accepted":
        emit_social_event(db, tenant_id=tenant_id, event_type="friend_accepted", actor_id=caller_id, target_id=requester_id)
    return {"requester_id": requester_id, "target_id": target_id, "status": status}


def is_friend(db, *, tenant_id: str, member_a: str, member_b: str) -> bool:
    if str(member_a) == str(member_b):
        return True
    row = db.execute(
        select(FriendEdge.id).where(
            FriendEdge.tenant_id == tenant_id,
            FriendEdge.status == "accepted",
            _either_orientation(member_a, member_b),
        )
    ).first()
    return row is not None


def list_friends(db, *, tenant_id: str, caller_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        select(FriendEdge.requester_id, FriendEdge.target_id).where(
            FriendEdge.tenant_id == tenant_id,
            FriendEdge.status == "accepted",
            or_(FriendEdge.requester_id == caller_id, FriendEdge.target_id == caller_id),
        )
    ).mappings().all()
    others = [str(r["target_id"]) if str(r["requester_id"]) == str(caller_id) else str(r["requester_id"]) for r in rows]
    profiles = members_by_id(db, tenant_id, others)
    return sorted(profiles.values(), key=lambda m: (str(m.get("name") or ""), str(m["id"])))


def list_pending_requests(db, *, tenant_id: str, caller_id: str) -> dict[str, list[dict[str, Any]]]:
    rows = db.execute(
        select(FriendEdge.requester_id, FriendEdge.target_id, FriendEdge.created_at)
        .where(
            FriendEdge.tenant_id == tenant_id,
            FriendEdge.status == "pending",
            or_(FriendEdge.requester_id == caller_id, FriendEdge.target_id == caller_id),
        )
        .order_by(FriendEdge.created_at.asc())
    ).mappings().all()
    profiles = members_by_id(db, tenant_id, [r["requester_id"] for r in rows] + [r["target_id"] for r in rows])

    incoming: list[dict[str, Any]] = []
    outgoing: list[dict[str, Any]] = []
    for r in rows:
        if str(r["target_id"]) == str(caller_id):
            other = str(r["requester_id"])
            incoming.append({"member": profiles.get(other, {"id": other}), "requested_at": r["created_at"]})
        else:
            other = str(r["target_id"])
            outgoing.append({"member": profiles.get(other, {"id": other}), "requested_at": r["created_at"]})
    return {"incoming": incoming, "outgoing": outgoing}
