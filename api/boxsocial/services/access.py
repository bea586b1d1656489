"""Authorization preconditions, one per rule, checked after the tenant-scoped fetch."""

from typing import Any

from ..errors import Forbidden


def require_owner(challenge: dict[str, Any], caller_id: str, action: str) -> None:
    if str(challenge["creator_id"]) != str(caller_id):
        raise Forbidden(f"Only the challenge creator can {action}")


def require_invited_participant(challenge: dict[str, Any], participant: dict[str, Any] | None, caller_id: str) -> dict[str, Any]:
    # The creator's row is pre-accepted and is not an invitation.
    if participant is None or str(challenge["creator_id"]) == str(caller_id):
        raise Forbidden("You are not invited to this challenge")
    return participant


def require_accepted_participant(participant: dict[str, Any] | None) -> dict[str, Any]:
    if participant is None or participant.get("status") != "accepted":
        raise Forbidden("Only accepted participants can record results")
    return participant


def require_respondent(edge: dict[str, Any], caller_id: str) -> None:
    if str(edge["target_id"]) != str(caller_id):
        raise Forbidden("Only the requested member can respond")
