from datetime import date

from boxsocial.services.state_machine import all_invitees_accepted, effective_status, transition_participant


def test_participant_transitions():
    assert transition_participant("invited", "accept") == "accepted"
    assert transition_participant("invited", "decline") == "rejected"
    assert transition_participant("rejected", "accept") == "accepted"
    assert transition_participant("rejected", "decline") == "rejected"
    assert transition_participant("accepted", "accept") == "accepted"


def test_accepted_invitation_cannot_be_declined():
    assert transition_participant("accepted", "decline") is None


def test_all_invitees_accepted_ignores_creator_row():
    rows = [
        {"participant_id": "ana", "status": "accepted"},
        {"participant_id": "bruno", "status": "accepted"},
        {"participant_id": "carla", "status": "invited"},
    ]
    assert not all_invitees_accepted(rows, "ana")
    rows[2]["status"] = "accepted"
    assert all_invitees_accepted(rows, "ana")


def test_all_invitees_accepted_requires_an_invitee():
    assert not all_invitees_accepted([{"participant_id": "ana", "status": "accepted"}], "ana")


def test_rejected_invitee_blocks_activation():
    rows = [
        {"participant_id": "ana", "status": "accepted"},
        {"participant_id": "bruno", "status": "rejected"},
    ]
    assert not all_invitees_accepted(rows, "ana")


def test_effective_status_completes_after_end_date():
    end = date(2024, 3, 10)
    assert effective_status("active", end, date(2024, 3, 10)) == "active"
    assert effective_status("active", end, date(2024, 3, 11)) == "completed"
    assert effective_status("pending", end, date(2024, 3, 11)) == "pending"
