from datetime import date
from typing import Any, Iterable

PARTICIPANT_TRANSITIONS = {
    ("invited", "accept"): "accepted",
    ("invited", "decline"): "rejected",
    ("rejected", "accept"): "accepted",
    ("rejected", "decline"): "rejected",
    ("accepted", "accept"): "accepted",
}


def transition_participant(current: str, action: str) -> str | None:
    """Next participant status, or ``None`` when the response is not allowed.

    An accepted invitation cannot be withdrawn; a declined one can still be
    accepted later.
    """
    return PARTICIPANT_TRANSITIONS.get((current, action))


def all_invitees_accepted(participants: Iterable[dict[str, Any]], creator_id: str) -> bool:
    invitees = [p for p in participants if str(p["participant_id"]) != str(creator_id)]
    return bool(invitees) and all(p["status"] == "accepted" for p in invitees)


def effective_status(stored: str, end_date: date, today: date) -> str:
    if stored == "active" and today > end_date:
        return "completed"
    return stored
