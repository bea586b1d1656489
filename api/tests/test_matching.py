import pytest
from sqlalchemy import select

from boxsocial.errors import InvalidArgument, InvalidReference
from boxsocial.models import MatchEdge, SocialEvent
from boxsocial.services import matching


def _edges(db):
    rows = db.execute(select(MatchEdge.actor_id, MatchEdge.target_id, MatchEdge.status)).all()
    return {(a, t): s for a, t, s in rows}


def _like(db, actor, target, tenant="tenant-a"):
    return matching.record_action(db, tenant_id=tenant, actor_id=actor, target_id=target, action="like")


def _reject(db, actor, target, tenant="tenant-a"):
    return matching.record_action(db, tenant_id=tenant, actor_id=actor, target_id=target, action="reject")


@pytest.mark.parametrize("first,second", [("ana", "bruno"), ("bruno", "ana")])
def test_reciprocal_likes_converge_to_mutual_in_either_order(db, world, first, second):
    first_result = _like(db, first, second)
    assert first_result["status"] == "matched"
    assert first_result["mutual"] is False

    second_result = _like(db, second, first)
    assert second_result["status"] == "mutual_match"
    assert second_result["mutual"] is True

    assert _edges(db) == {("ana", "bruno"): "mutual_match", ("bruno", "ana"): "mutual_match"}


def test_repeated_like_is_idempotent(db, world):
    _like(db, "ana", "bruno")
    before = _edges(db)
    for _ in range(3):
        assert _like(db, "ana", "bruno")["status"] == "matched"
    assert _edges(db) == before

    _like(db, "bruno", "ana")
    for _ in range(3):
        assert _like(db, "ana", "bruno")["status"] == "mutual_match"
    assert set(_edges(db).values()) == {"mutual_match"}


def test_repeated_reject_is_idempotent_and_emits_once(db, world):
    for _ in range(3):
        assert _reject(db, "ana", "carla")["status"] == "rejected"
    assert _edges(db) == {("ana", "carla"): "rejected"}
    dislikes = db.execute(select(SocialEvent).where(SocialEvent.event_type == "dislike")).scalars().all()
    assert len(dislikes) == 1


def test_like_against_rejection_does_not_promote(db, world):
    _reject(db, "bruno", "ana")
    result = _like(db, "ana", "bruno")
    assert result["status"] == "matched"
    assert _edges(db) == {("ana", "bruno"): "matched", ("bruno", "ana"): "rejected"}


def test_reject_of_mutual_pair_demotes_other_side(db, world):
    _like(db, "ana", "bruno")
    _like(db, "bruno", "ana")
    _reject(db, "ana", "bruno")
    assert _edges(db) == {("ana", "bruno"): "rejected", ("bruno", "ana"): "matched"}
    assert matching.list_mutual_matches(db, tenant_id="tenant-a", caller_id="bruno") == []


def test_mutual_match_emits_event_for_both_members(db, world):
    _like(db, "ana", "bruno")
    _like(db, "bruno", "ana")
    rows = db.execute(
        select(SocialEvent.actor_id, SocialEvent.target_id).where(SocialEvent.event_type == "mutual_match")
    ).all()
    assert sorted(tuple(r) for r in rows) == [("ana", "bruno"), ("bruno", "ana")]


def test_self_action_is_invalid(db, world):
    with pytest.raises(InvalidArgument):
        _like(db, "ana", "ana")
    assert _edges(db) == {}


def test_unknown_action_is_invalid(db, world):
    with pytest.raises(InvalidArgument):
        matching.record_action(db, tenant_id="tenant-a", actor_id="ana", target_id="bruno", action="superlike")


def test_missing_and_foreign_targets_are_invalid_references(db, world):
    with pytest.raises(InvalidReference):
        _like(db, "ana", "nobody")
    with pytest.raises(InvalidReference):
        _like(db, "ana", "eva")
    assert _edges(db) == {}


def test_candidates_exclude_self_acted_upon_and_other_tenants(db, world):
    _like(db, "ana", "bruno")
    _reject(db, "ana", "carla")
    candidates = matching.list_candidates(db, tenant_id="tenant-a", caller_id="ana", limit=10)
    assert [c["id"] for c in candidates] == ["diego"]


def test_candidates_respect_limit(db, world):
    candidates = matching.list_candidates(db, tenant_id="tenant-a", caller_id="ana", limit=2)
    assert len(candidates) == 2
    assert {c["id"] for c in candidates} <= {"bruno", "carla", "diego"}


def test_incoming_like_does_not_hide_candidate(db, world):
    _like(db, "bruno", "ana")
    ids = {c["id"] for c in matching.list_candidates(db, tenant_id="tenant-a", caller_id="ana", limit=10)}
    assert "bruno" in ids


def test_mutual_matches_visible_from_both_sides(db, world):
    _like(db, "ana", "bruno")
    _like(db, "bruno", "ana")
    _like(db, "carla", "ana")

    assert [m["id"] for m in matching.list_mutual_matches(db, tenant_id="tenant-a", caller_id="ana")] == ["bruno"]
    assert [m["id"] for m in matching.list_mutual_matches(db, tenant_id="tenant-a", caller_id="bruno")] == ["ana"]


def test_match_status_reads_both_directions(db, world):
    _like(db, "ana", "bruno")
    status = matching.get_match_status(db, tenant_id="tenant-a", member_a="bruno", member_b="ana")
    assert status == {"outgoing": None, "incoming": "matched", "mutual": False}


def test_resolve_pair_statuses_table():
    assert matching.resolve_pair_statuses("like", None, None) == ("matched", None)
    assert matching.resolve_pair_statuses("like", None, "matched") == ("mutual_match", "mutual_match")
    assert matching.resolve_pair_statuses("like", "mutual_match", "mutual_match") == ("mutual_match", "mutual_match")
    assert matching.resolve_pair_statuses("like", "rejected", "rejected") == ("matched", "rejected")
    assert matching.resolve_pair_statuses("reject", "mutual_match", "mutual_match") == ("rejected", "matched")
    assert matching.resolve_pair_statuses("reject", None, "matched") == ("rejected", "matched")


def test_canonical_pair_is_order_independent():
    assert matching.canonical_pair("bruno", "ana") == matching.canonical_pair("ana", "bruno") == ("ana", "bruno")
