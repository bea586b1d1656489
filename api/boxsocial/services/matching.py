from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from ..database import lock_key, transaction, upsert
from ..errors import InvalidArgument, InvalidReference
from ..models import MatchEdge, Member
from .events import emit_social_event
from .tenancy import get_member_in_tenant, members_by_id

logger = logging.getLogger(__name__)

ACTION_STATUS = {"like": "matched", "reject": "rejected"}
MUTUAL = "mutual_match"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    return tuple(sorted((user_a, user_b)))


def _edge_status(db, actor_id: str, target_id: str) -> str | None:
    return db.execute(
        select(MatchEdge.status).where(MatchEdge.actor_id == actor_id, MatchEdge.target_id == target_id)
    ).scalar()


def _write_edge(db, *, tenant_id: str, actor_id: str, target_id: str, status: str, now: datetime) -> None:
    stmt = upsert(db, MatchEdge.__table__).values(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        actor_id=actor_id,
        target_id=target_id,
        status=status,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["actor_id", "target_id"],
        set_={"status": stmt.excluded.status, "updated_at": stmt.excluded.updated_at},
    )
    db.execute(stmt)


def _set_status(db, *, actor_id: str, target_id: str, status: str, now: datetime) -> None:
    db.execute(
        update(MatchEdge)
        .where(MatchEdge.actor_id == actor_id, MatchEdge.target_id == target_id)
        .values(status=status, updated_at=now)
    )


def resolve_pair_statuses(action: str, current: str | None, reverse: str | None) -> tuple[str, str | None]:
    """New (actor edge, opposite edge) statuses after ``action``.

    A like meeting an existing like promotes both sides to ``mutual_match``.
    A reject on a mutual pair demotes the other side back to a plain like so
    the pair never ends half-mutual.
    """
    if action == "like":
        if reverse in ("matched", MUTUAL):
            return MUTUAL, MUTUAL
        return "matched", reverse
    if reverse == MUTUAL:
        return "rejected", "matched"
    return "rejected", reverse


def record_action(
    db,
    *,
    tenant_id: str,
    actor_id: str,
    target_id: str,
    action: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    if action not in ACTION_STATUS:
        raise InvalidArgument("action must be one of: like, reject")
    if str(actor_id) == str(target_id):
        raise InvalidArgument("You cannot like or reject yourself")
    now = now or _now_utc()

    try:
        with transaction(db):
            # Targets outside the caller's box are indistinguishable from missing ones.
            if not get_member_in_tenant(db, tenant_id, target_id):
                raise InvalidReference("Target member does not exist")

            lock_key(db, "match", *canonical_pair(actor_id, target_id))
            current = _edge_status(db, actor_id, target_id)
            reverse = _edge_status(db, target_id, actor_id)
            new_status, new_reverse = resolve_pair_statuses(action, current, reverse)

            if new_status != current:
                _write_edge(db, tenant_id=tenant_id, actor_id=actor_id, target_id=target_id, status=new_status, now=now)
            if reverse is not None and new_reverse != reverse:
                _set_status(db, actor_id=target_id, target_id=actor_id, status=new_reverse, now=now)
    except IntegrityError as exc:
        logger.warning("[MATCH] integrity error actor_id=%s target_id=%s: %s", actor_id, target_id, exc)
        raise InvalidReference("Target member does not exist") from exc

    promoted = new_status == MUTUAL and current != MUTUAL
    logger.info(
        "[MATCH] action=%s actor_id=%s target_id=%s status=%s->%s promoted=%s",
        action,
        actor_id,
        target_id,
        current,
        new_status,
        promoted,
    )

    if new_status != current:
        emit_social_event(
            db,
            tenant_id=tenant_id,
            event_type="like" if action == "like" else "dislike",
            actor_id=actor_id,
            target_id=target_id,
        )
    if promoted:
        for a, b in ((actor_id, target_id), (target_id, actor_id)):
            emit_social_event(db, tenant_id=tenant_id, event_type="mutual_match", actor_id=a, target_id=b)

    return {"target_id": target_id, "action": action, "status": new_status, "mutual": new_status == MUTUAL}


def list_candidates(db, *, tenant_id: str, caller_id: str, limit: int) -> list[dict[str, Any]]:
    """Members of the box the caller has never liked or rejected, in random order."""
    acted_upon = select(MatchEdge.target_id).where(MatchEdge.actor_id == caller_id)
    rows = db.execute(
        select(Member.id, Member.name, Member.gender, Member.photo_url, Member.age)
        .where(
            Member.tenant_id == tenant_id,
            Member.id != caller_id,
            Member.id.not_in(acted_upon),
        )
        .order_by(func.random())
        .limit(limit)
    ).mappings().all()
    return [dict(r) for r in rows]


def list_mutual_matches(db, *, tenant_id: str, caller_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        select(MatchEdge.actor_id, MatchEdge.target_id, MatchEdge.updated_at).where(
            MatchEdge.tenant_id == tenant_id,
            MatchEdge.status == MUTUAL,
            or_(MatchEdge.actor_id == caller_id, MatchEdge.target_id == caller_id),
        )
    ).mappings().all()

    matched_at: dict[str, Any] = {}
    for r in rows:
        other = str(r["target_id"]) if str(r["actor_id"]) == str(caller_id) else str(r["actor_id"])
        if other not in matched_at or (r["updated_at"] and r["updated_at"] > matched_at[other]):
            matched_at[other] = r["updated_at"]

    profiles = members_by_id(db, tenant_id, matched_at.keys())
    out = [
        {
            "id": member_id,
            "name": profile.get("name"),
            "gender": profile.get("gender"),
            "photo_url": profile.get("photo_url"),
            "matched_at": matched_at[member_id],
        }
        for member_id, profile in profiles.items()
    ]
    return sorted(out, key=lambda m: (str(m["name"] or ""), m["id"]))


def get_match_status(db, *, tenant_id: str, member_a: str, member_b: str) -> dict[str, Any]:
    rows = db.execute(
        select(MatchEdge.actor_id, MatchEdge.status).where(
            MatchEdge.tenant_id == tenant_id,
            or_(
                (MatchEdge.actor_id == member_a) & (MatchEdge.target_id == member_b),
                (MatchEdge.actor_id == member_b) & (MatchEdge.target_id == member_a),
            ),
        )
    ).mappings().all()
    outgoing = next((r["status"] for r in rows if str(r["actor_id"]) == str(member_a)), None)
    incoming = next((r["status"] for r in rows if str(r["actor_id"]) == str(member_b)), None)
    return {
        "outgoing": outgoing,
        "incoming": incoming,
        "mutual": MUTUAL in (outgoing, incoming),
    }
