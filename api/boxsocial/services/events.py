import logging
import uuid
from typing import Any

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError

from ..models import SocialEvent

logger = logging.getLogger(__name__)

EVENT_TYPES = {
    "like",
    "dislike",
    "mutual_match",
    "friend_request",
    "friend_accepted",
    "challenge_invite",
    "challenge_response",
    "challenge_activated",
}


def emit_social_event(
    db,
    *,
    tenant_id: str,
    event_type: str,
    actor_id: str | None = None,
    target_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> bool:
    """Record an event for downstream notification delivery.

    Runs in its own short transaction after the triggering operation has
    committed. A failure is logged and reported as ``False``; it never fails
    the operation that produced the event.
    """
    if event_type not in EVENT_TYPES:
        logger.warning("[EVENTS] unknown event_type=%s ignored", event_type)
        return False
    try:
        db.execute(
            insert(SocialEvent).values(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                actor_id=actor_id,
                target_id=target_id,
                event_type=event_type,
                payload=payload or {},
            )
        )
        db.commit()
        return True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("[EVENTS] failed to record event_type=%s tenant_id=%s: %s", event_type, tenant_id, exc)
        return False


def emit_many(db, *, tenant_id: str, event_type: str, actor_id: str | None, target_ids: list[str], payload: dict[str, Any] | None = None) -> int:
    sent = 0
    for target_id in target_ids:
        if emit_social_event(db, tenant_id=tenant_id, event_type=event_type, actor_id=actor_id, target_id=target_id, payload=payload):
            sent += 1
    return sent
