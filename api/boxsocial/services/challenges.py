"""
Challenge engine.

A challenge is created by one member together with its participant rows: the
creator's row pre-accepted, one ``invited`` row per invitee. It turns
``active`` once every invitee has accepted; the check re-reads all participant
rows inside the responder's transaction, after locking the challenge row, so
concurrent final acceptances cannot both miss the transition.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

from sqlalchemy import and_, delete, insert, select, update

from ..database import transaction, upsert
from ..errors import Conflict, InvalidArgument, InvalidReference
from ..models import Challenge, ChallengeParticipant, ChallengeResult, Member
from .access import require_accepted_participant, require_invited_participant, require_owner
from .challenge_types import SUPPORTED_TYPES, ChallengeType
from .events import emit_many, emit_social_event
from .leaderboard import local_midnight
from .ledger import sum_metric, sum_metric_by_participant
from .ranking import RankRecord, rank
from .state_machine import all_invitees_accepted, effective_status, transition_participant
from .tenancy import get_challenge_in_tenant, members_by_id, missing_members, tenant_timezone

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 500


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _local_today(db, tenant_id: str, now: datetime | None) -> date:
    return (now or _now_utc()).astimezone(tenant_timezone(db, tenant_id)).date()


def _clean_ids(values: Iterable[Any] | None) -> list[str]:
    out = [str(v).strip() for v in (values or []) if v is not None and str(v).strip()]
    return list(dict.fromkeys(out))


def _parse_type(raw: str | None) -> ChallengeType:
    ctype = ChallengeType.parse(raw)
    if ctype is None:
        raise InvalidArgument(f"type must be one of: {', '.join(SUPPORTED_TYPES)}")
    return ctype


def _participants(db, challenge_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        select(ChallengeParticipant.__table__)
        .where(ChallengeParticipant.challenge_id == challenge_id)
        .order_by(ChallengeParticipant.created_at.asc(), ChallengeParticipant.participant_id.asc())
    ).mappings().all()
    return [dict(r) for r in rows]


def _participant(db, challenge_id: str, participant_id: str) -> dict[str, Any] | None:
    row = db.execute(
        select(ChallengeParticipant.__table__).where(
            ChallengeParticipant.challenge_id == challenge_id,
            ChallengeParticipant.participant_id == participant_id,
        )
    ).mappings().first()
    return dict(row) if row else None


def _upsert_result(db, *, challenge_id: str, participant_id: str, value: float, now: datetime) -> None:
    stmt = upsert(db, ChallengeResult.__table__).values(
        id=str(uuid.uuid4()),
        challenge_id=challenge_id,
        participant_id=participant_id,
        result_value=value,
        recorded_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["challenge_id", "participant_id"],
        set_={"result_value": stmt.excluded.result_value, "recorded_at": stmt.excluded.recorded_at},
    )
    db.execute(stmt)


def _insert_participants(db, challenge_id: str, rows: list[dict[str, Any]]) -> None:
    db.execute(
        insert(ChallengeParticipant),
        [{"id": str(uuid.uuid4()), "challenge_id": challenge_id, **row} for row in rows],
    )


def serialize_challenge(challenge: dict[str, Any], today: date) -> dict[str, Any]:
    return {
        "id": challenge["id"],
        "tenant_id": challenge["tenant_id"],
        "creator_id": challenge["creator_id"],
        "title": challenge["title"],
        "type": challenge["type"],
        "start_date": challenge["start_date"],
        "end_date": challenge["end_date"],
        "status": effective_status(challenge["status"], challenge["end_date"], today),
        "created_at": challenge["created_at"],
    }


def result_window(ctype: ChallengeType, start_date: date, end_date: date, tz) -> tuple[datetime, datetime]:
    """Ledger window for a calorie-type challenge.

    ``end_date`` is inclusive, so the window closes at the following local
    midnight. Rolling types look back ``window_days`` from there; the plain
    calories type covers the whole challenge period.
    """
    window_end = local_midnight(end_date + timedelta(days=1), tz)
    if ctype.window_days is None:
        return local_midnight(start_date, tz), window_end
    return local_midnight(end_date + timedelta(days=1 - ctype.window_days), tz), window_end


def create(
    db,
    *,
    tenant_id: str,
    creator_id: str,
    title: str | None,
    start_date: date | None,
    end_date: date | None,
    challenge_type: str | None,
    invited_ids: Iterable[Any] | None,
    now: datetime | None = None,
) -> dict[str, Any]:
    title = str(title or "").strip()
    if not title:
        raise InvalidArgument("title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise InvalidArgument(f"title must be {MAX_TITLE_LENGTH} characters or fewer")
    if start_date is None or end_date is None:
        raise InvalidArgument("start_date and end_date are required")
    if start_date > end_date:
        raise InvalidArgument("start_date must not be after end_date")
    ctype = _parse_type(challenge_type)
    invitees = [i for i in _clean_ids(invited_ids) if i != str(creator_id)]
    if not invitees:
        raise InvalidArgument("invite at least one other member")
    now = now or _now_utc()
    challenge_id = str(uuid.uuid4())

    with transaction(db):
        unknown = missing_members(db, tenant_id, invitees)
        if unknown:
            raise InvalidReference(f"Unknown members: {', '.join(unknown)}")
        db.execute(
            insert(Challenge).values(
                id=challenge_id,
                tenant_id=tenant_id,
                creator_id=creator_id,
                title=title,
                type=ctype.value,
                start_date=start_date,
                end_date=end_date,
                status="pending",
                created_at=now,
            )
        )
        _insert_participants(
            db,
            challenge_id,
            [{"participant_id": creator_id, "status": "accepted", "responded_at": now, "created_at": now}]
            + [{"participant_id": i, "status": "invited", "responded_at": None, "created_at": now} for i in invitees],
        )

    logger.info(
        "[CHALLENGE] created challenge_id=%s tenant_id=%s creator_id=%s type=%s invitees=%s",
        challenge_id,
        tenant_id,
        creator_id,
        ctype.value,
        len(invitees),
    )
    emit_many(
        db,
        tenant_id=tenant_id,
        event_type="challenge_invite",
        actor_id=creator_id,
        target_ids=invitees,
        payload={"challenge_id": challenge_id, "title": title},
    )
    return get_challenge(db, tenant_id=tenant_id, challenge_id=challenge_id, now=now)


def respond(
    db,
    *,
    tenant_id: str,
    challenge_id: str,
    participant_id: str,
    action: str,
    message: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    if action not in ("accept", "decline"):
        raise InvalidArgument("action must be one of: accept, decline")
    message = str(message or "").strip() or None
    if message and len(message) > MAX_MESSAGE_LENGTH:
        raise InvalidArgument(f"message must be {MAX_MESSAGE_LENGTH} characters or fewer")
    now = now or _now_utc()

    with transaction(db):
        challenge = get_challenge_in_tenant(db, tenant_id, challenge_id, for_update=True)
        row = require_invited_participant(challenge, _participant(db, challenge_id, participant_id), participant_id)
        new_status = transition_participant(row["status"], action)
        if new_status is None:
            raise Conflict("Invitation was already accepted")

        db.execute(
            update(ChallengeParticipant)
            .where(ChallengeParticipant.id == row["id"])
            .values(status=new_status, response_message=message, responded_at=now)
        )

        activated = False
        if action == "accept":
            # Fresh read after our own write: whoever accepts last sees every row accepted.
            if all_invitees_accepted(_participants(db, challenge_id), challenge["creator_id"]):
                result = db.execute(
                    update(Challenge)
                    .where(Challenge.id == challenge_id, Challenge.status == "pending")
                    .values(status="active")
                )
                activated = result.rowcount == 1

    challenge_status = "active" if activated else challenge["status"]
    logger.info(
        "[CHALLENGE] respond challenge_id=%s participant_id=%s action=%s status=%s->%s challenge_status=%s",
        challenge_id,
        participant_id,
        action,
        row["status"],
        new_status,
        challenge_status,
    )

    emit_social_event(
        db,
        tenant_id=tenant_id,
        event_type="challenge_response",
        actor_id=participant_id,
        target_id=str(challenge["creator_id"]),
        payload={"challenge_id": challenge_id, "status": new_status, "message": message},
    )
    if activated:
        accepted = [str(p["participant_id"]) for p in _participants(db, challenge_id) if p["status"] == "accepted"]
        emit_many(
            db,
            tenant_id=tenant_id,
            event_type="challenge_activated",
            actor_id=None,
            target_ids=accepted,
            payload={"challenge_id": challenge_id},
        )

    return {
        "challenge_id": challenge_id,
        "participant_status": new_status,
        "challenge_status": challenge_status,
        "activated": activated,
    }


def add_participants(
    db,
    *,
    tenant_id: str,
    challenge_id: str,
    caller_id: str,
    new_ids: Iterable[Any] | None,
    now: datetime | None = None,
) -> dict[str, Any]:
    ids = _clean_ids(new_ids)
    if not ids:
        raise InvalidArgument("provide at least one member id to invite")
    now = now or _now_utc()

    with transaction(db):
        challenge = get_challenge_in_tenant(db, tenant_id, challenge_id, for_update=True)
        require_owner(challenge, caller_id, "add participants")
        if challenge["status"] != "pending":
            raise Conflict("Participants can only be added before the challenge starts")
        unknown = missing_members(db, tenant_id, ids)
        if unknown:
            raise InvalidReference(f"Unknown members: {', '.join(unknown)}")

        existing = {str(p["participant_id"]) for p in _participants(db, challenge_id)}
        added = [i for i in ids if i not in existing]
        if added:
            stmt = upsert(db, ChallengeParticipant.__table__).values(
                [
                    {
                        "id": str(uuid.uuid4()),
                        "challenge_id": challenge_id,
                        "participant_id": i,
                        "status": "invited",
                        "created_at": now,
                    }
                    for i in added
                ]
            )
            db.execute(stmt.on_conflict_do_nothing(index_elements=["challenge_id", "participant_id"]))

    logger.info("[CHALLENGE] add_participants challenge_id=%s added=%s skipped=%s", challenge_id, len(added), len(ids) - len(added))
    if added:
        emit_many(
            db,
            tenant_id=tenant_id,
            event_type="challenge_invite",
            actor_id=caller_id,
            target_ids=added,
            payload={"challenge_id": challenge_id, "title": challenge["title"]},
        )
    return {
        "challenge_id": challenge_id,
        "added": added,
        "already_present": [i for i in ids if i not in added],
    }


def delete_challenge(db, *, tenant_id: str, challenge_id: str, caller_id: str) -> dict[str, Any]:
    with transaction(db):
        challenge = get_challenge_in_tenant(db, tenant_id, challenge_id, for_update=True)
        require_owner(challenge, caller_id, "delete it")
        db.execute(delete(ChallengeResult).where(ChallengeResult.challenge_id == challenge_id))
        db.execute(delete(ChallengeParticipant).where(ChallengeParticipant.challenge_id == challenge_id))
        db.execute(delete(Challenge).where(Challenge.id == challenge_id))

    logger.info("[CHALLENGE] deleted challenge_id=%s by creator_id=%s", challenge_id, caller_id)
    return {"challenge_id": challenge_id, "deleted": True}


def submit_result(
    db,
    *,
    tenant_id: str,
    challenge_id: str,
    participant_id: str,
    value: Any,
    now: datetime | None = None,
) -> dict[str, Any]:
    if isinstance(value, bool):
        raise InvalidArgument("result_value must be a number")
    try:
        result_value = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument("result_value must be a number")
    if not math.isfinite(result_value) or result_value < 0:
        raise InvalidArgument("result_value must be a finite, non-negative number")
    now = now or _now_utc()

    with transaction(db):
        challenge = get_challenge_in_tenant(db, tenant_id, challenge_id)
        require_accepted_participant(_participant(db, challenge_id, participant_id))
        ctype = _parse_type(challenge["type"])
        if ctype.ledger_backed:
            raise InvalidArgument("Results for this challenge type are computed from workout data")
        _upsert_result(db, challenge_id=challenge_id, participant_id=participant_id, value=result_value, now=now)

    logger.info("[CHALLENGE] result challenge_id=%s participant_id=%s value=%s", challenge_id, participant_id, result_value)
    return {"challenge_id": challenge_id, "participant_id": participant_id, "result_value": result_value, "recorded_at": now}


def compute_calories_result(
    db,
    *,
    tenant_id: str,
    challenge_id: str,
    participant_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or _now_utc()

    with transaction(db):
        challenge = get_challenge_in_tenant(db, tenant_id, challenge_id)
        require_accepted_participant(_participant(db, challenge_id, participant_id))
        ctype = _parse_type(challenge["type"])
        if not ctype.ledger_backed:
            raise InvalidArgument("This challenge type takes submitted results")
        start, end = result_window(ctype, challenge["start_date"], challenge["end_date"], tenant_timezone(db, tenant_id))
        value = sum_metric(db, participant_id, ctype.ledger_metric, start, end)
        _upsert_result(db, challenge_id=challenge_id, participant_id=participant_id, value=value, now=now)

    logger.info(
        "[CHALLENGE] computed challenge_id=%s participant_id=%s metric=%s value=%s window=[%s, %s)",
        challenge_id,
        participant_id,
        ctype.ledger_metric,
        value,
        start.isoformat(),
        end.isoformat(),
    )
    return {
        "challenge_id": challenge_id,
        "participant_id": participant_id,
        "result_value": value,
        "window_start": start,
        "window_end": end,
        "recorded_at": now,
    }


def get_challenge(db, *, tenant_id: str, challenge_id: str, now: datetime | None = None) -> dict[str, Any]:
    challenge = get_challenge_in_tenant(db, tenant_id, challenge_id)
    participants = _participants(db, challenge_id)
    profiles = members_by_id(db, tenant_id, [p["participant_id"] for p in participants])
    out = serialize_challenge(challenge, _local_today(db, tenant_id, now))
    out["participants"] = [
        {
            "participant_id": p["participant_id"],
            "name": (profiles.get(str(p["participant_id"])) or {}).get("name"),
            "status": p["status"],
            "is_creator": str(p["participant_id"]) == str(challenge["creator_id"]),
            "responded_at": p["responded_at"],
        }
        for p in participants
    ]
    return out


def list_my_challenges(db, *, tenant_id: str, caller_id: str, now: datetime | None = None) -> list[dict[str, Any]]:
    rows = db.execute(
        select(Challenge.__table__, ChallengeParticipant.status.label("my_status"))
        .select_from(Challenge)
        .join(ChallengeParticipant, ChallengeParticipant.challenge_id == Challenge.id)
        .where(Challenge.tenant_id == tenant_id, ChallengeParticipant.participant_id == caller_id)
        .order_by(Challenge.created_at.desc(), Challenge.id.asc())
    ).mappings().all()
    today = _local_today(db, tenant_id, now)
    return [{**serialize_challenge(dict(r), today), "my_status": r["my_status"]} for r in rows]


def list_pending_invites(db, *, tenant_id: str, caller_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        select(
            Challenge.id.label("challenge_id"),
            Challenge.title,
            Challenge.type,
            Challenge.start_date,
            Challenge.end_date,
            Challenge.creator_id,
            Member.name.label("creator_name"),
        )
        .select_from(Challenge)
        .join(ChallengeParticipant, ChallengeParticipant.challenge_id == Challenge.id)
        .join(Member, Member.id == Challenge.creator_id)
        .where(
            Challenge.tenant_id == tenant_id,
            ChallengeParticipant.participant_id == caller_id,
            ChallengeParticipant.status == "invited",
        )
        .order_by(Challenge.created_at.desc(), Challenge.id.asc())
    ).mappings().all()
    return [dict(r) for r in rows]


def challenge_ranking(db, *, tenant_id: str, challenge_id: str, now: datetime | None = None) -> dict[str, Any]:
    challenge = get_challenge_in_tenant(db, tenant_id, challenge_id)
    ctype = _parse_type(challenge["type"])
    rows = db.execute(
        select(
            ChallengeParticipant.participant_id,
            Member.name,
            Member.photo_url,
            ChallengeResult.result_value,
            ChallengeResult.recorded_at,
        )
        .select_from(ChallengeParticipant)
        .join(Member, Member.id == ChallengeParticipant.participant_id)
        .outerjoin(
            ChallengeResult,
            and_(
                ChallengeResult.challenge_id == ChallengeParticipant.challenge_id,
                ChallengeResult.participant_id == ChallengeParticipant.participant_id,
            ),
        )
        .where(ChallengeParticipant.challenge_id == challenge_id, ChallengeParticipant.status == "accepted")
    ).mappings().all()
    records = [
        RankRecord(
            participant_id=str(r["participant_id"]),
            value=None if r["result_value"] is None else float(r["result_value"]),
            recorded_at=r["recorded_at"],
            data={"name": r["name"], "photo_url": r["photo_url"]},
        )
        for r in rows
    ]
    if ctype.ledger_backed:
        # Calorie standings are read live from the ledger, not from stored results.
        start, end = result_window(ctype, challenge["start_date"], challenge["end_date"], tenant_timezone(db, tenant_id))
        totals = sum_metric_by_participant(db, [r.participant_id for r in records], ctype.ledger_metric, start, end)
        records = [
            RankRecord(participant_id=r.participant_id, value=totals[r.participant_id], recorded_at=None, data=r.data)
            for r in records
        ]
    return {
        "challenge": serialize_challenge(challenge, _local_today(db, tenant_id, now)),
        "higher_is_better": ctype.higher_is_better,
        "ranking": [entry.to_dict() for entry in rank(records, ctype)],
    }
