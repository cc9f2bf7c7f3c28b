"""
Store tests: call/team/user lifecycles, duplicate detection, offline queue,
PCR filing, scheduling and the audit trail.
"""

import pytest

from conftest import FIXED_NOW, new_call
from models import CallStatus, EmtStatus, TeamGrade, TeamStatus, UserRole
from services.store import ConflictError, NotFoundError, ValidationError


def _actions(store):
    return [e.action for e in store.audit_log]


def _complete(store, call_id, team_id):
    store.assign_team(call_id, team_id)
    store.update_call_status(call_id, "On Scene")
    store.update_call_status(call_id, "Completed")


PCR_FORM = {
    "patientVitals": "BP 130/85, HR 96, SpO2 97%",
    "treatmentsAdministered": "C-collar, O2 via NC",
    "medications": "",
    "transferDestination": "General Hospital",
}


# ─── Auth ──────────────────────────────────────────────────────────────────────

def test_login_audits_success_only(store):
    assert store.login("dispatch1", "wrong") is None
    assert store.audit_log == []

    user = store.login("dispatch1", "password")
    assert user.role == UserRole.DISPATCHER
    assert store.audit_log[0].action == "User Login"
    assert store.audit_log[0].user == "dispatch1"


def test_signup_emt_starts_off_duty(store):
    user = store.signup("emt9", "secret", "EMT")
    assert user.id == 9
    assert user.status == EmtStatus.OFF_DUTY
    assert user.certifications == []
    assert store.audit_log[0].details == "New user: emt9"


def test_signup_rejects_taken_username(store):
    assert store.signup("emt1", "x", "EMT") is None
    assert len(store.users) == 8


def test_signup_non_emt_has_no_status(store):
    user = store.signup("coo2", "x", "COO")
    assert user.status is None
    assert user.certifications is None


def test_signup_rejects_unknown_role(store):
    with pytest.raises(ValidationError):
        store.signup("someone", "x", "Pilot")


def test_signup_rejects_non_text_credentials(store):
    with pytest.raises(ValidationError):
        store.signup(42, "x", "EMT")
    assert store.find_user(42) is None


# ─── Calls ─────────────────────────────────────────────────────────────────────

def test_log_call_creates_pending_call_first(store):
    result = store.log_call(new_call(), actor="dispatch1")
    assert result.outcome == "logged"
    call = result.call
    assert call.id == 4
    assert call.status == CallStatus.PENDING
    assert call.is_synced is True
    assert call.timestamp == FIXED_NOW
    assert store.calls[0] is call
    entry = store.audit_log[0]
    assert (entry.action, entry.details, entry.user) == ("Call Logged", "ID: 4, Loc: 12 Elm St", "dispatch1")


def test_log_call_defaults_priority_to_three(store):
    data = new_call()
    del data["priority"]
    assert store.log_call(data).call.priority == 3


def test_log_call_requires_fields(store):
    with pytest.raises(ValidationError) as exc:
        store.log_call(new_call(location="  ", phone=""))
    assert exc.value.payload["missing"] == ["phone", "location"]


def test_log_call_rejects_bad_priority(store):
    with pytest.raises(ValidationError):
        store.log_call(new_call(priority=7))


def test_duplicate_open_call_blocks_creation(store):
    # Seed call 2 is Pending, from 555-5678, 30 minutes old
    result = store.log_call(new_call(phone="555-5678"))
    assert result.outcome == "duplicate"
    assert [c.id for c in result.duplicates] == [2]
    assert len(store.calls) == 3


def test_closed_call_is_not_a_duplicate(store):
    # Seed call 3 is Completed
    assert store.log_call(new_call(phone="555-8765")).outcome == "logged"


def test_create_call_anyway_skips_duplicate_check(store):
    call = store.create_call_anyway(new_call(phone="555-5678"))
    assert call.id == 4
    assert store.audit_log[0].action == "Duplicate Call Logged as New"


def test_link_call_appends_note(store):
    call = store.link_call(2, new_call(callerName="Neighbour", phone="555-1111", description="Still on the ground."))
    assert len(call.notes) == 1
    assert call.notes[0].startswith("[")
    assert call.notes[0].endswith('New report from Neighbour (555-1111): "Still on the ground."')
    assert store.audit_log[0].details == "New info added to Incident ID: 2"


def test_link_call_unknown_incident(store):
    with pytest.raises(NotFoundError):
        store.link_call(99, new_call())


def test_offline_call_is_queued_unsynced(store):
    store.set_online(False)
    result = store.log_call(new_call(phone="555-5678"))
    # No duplicate check offline
    assert result.outcome == "offline"
    assert result.call.id == int(FIXED_NOW.timestamp() * 1000)
    assert result.call.is_synced is False
    assert store.audit_log[0].action == "Offline Call Logged"
    assert store.audit_log[0].details == "Loc: 12 Elm St"


def test_offline_calls_in_same_instant_get_distinct_ids(store):
    store.set_online(False)
    first = store.log_call(new_call(phone="555-5678")).call
    second = store.log_call(new_call(phone="555-8765")).call
    assert first.id == int(FIXED_NOW.timestamp() * 1000)
    assert second.id == first.id + 1


def test_log_call_rejects_non_text_fields(store):
    with pytest.raises(ValidationError) as exc:
        store.log_call(new_call(phone=5550000))
    assert exc.value.payload == {"invalid": ["phone"]}
    with pytest.raises(ValidationError):
        store.log_call(new_call(landmark=["by the park"]))
    assert len(store.calls) == 3


def test_status_lifecycle_moves_team(store):
    call = store.update_call_status(1, "On Scene")
    assert call.on_scene_timestamp == FIXED_NOW
    assert store.get_team(2).status == TeamStatus.ON_SCENE

    store.update_call_status(1, "Transporting")
    assert store.get_team(2).status == TeamStatus.TRANSPORTING

    call = store.update_call_status(1, "Completed")
    assert call.completed_timestamp == FIXED_NOW
    team = store.get_team(2)
    assert team.status == TeamStatus.AVAILABLE
    assert team.assigned_call_id is None
    assert "Call Status Updated" in _actions(store)
    assert "Team Status Updated" in _actions(store)


def test_cancel_frees_team(store):
    store.update_call_status(1, "Cancelled")
    assert store.get_call(1).status == CallStatus.CANCELLED
    assert store.get_team(2).status == TeamStatus.AVAILABLE


def test_status_with_team_id_links_team(store):
    call = store.update_call_status(2, "Dispatched", team_id=1)
    assert call.assigned_team_id == 1
    assert store.get_team(1).assigned_call_id == 2
    assert store.get_team(1).status == TeamStatus.DISPATCHED

    store.update_call_status(2, "On Scene")
    store.update_call_status(2, "Completed")
    team = store.get_team(1)
    assert team.status == TeamStatus.AVAILABLE
    assert team.assigned_call_id is None


def test_status_with_other_team_id_conflicts(store):
    with pytest.raises(ConflictError):
        store.update_call_status(1, "On Scene", team_id=1)
    assert store.get_call(1).status == CallStatus.DISPATCHED
    assert store.get_team(1).status == TeamStatus.AVAILABLE

    with pytest.raises(ConflictError):
        store.update_call_status(2, "Dispatched", team_id=2)  # Bravo is busy
    assert store.get_call(2).assigned_team_id is None


def test_invalid_transitions_rejected(store):
    with pytest.raises(ConflictError):
        store.update_call_status(2, "On Scene")
    with pytest.raises(ConflictError):
        store.update_call_status(3, "Dispatched")
    with pytest.raises(ValidationError):
        store.update_call_status(2, "Teleported")


def test_assign_team(store):
    call = store.assign_team(2, 1, actor="dispatch1")
    assert call.status == CallStatus.DISPATCHED
    assert call.assigned_team_id == 1
    assert call.dispatch_timestamp == FIXED_NOW
    team = store.get_team(1)
    assert team.status == TeamStatus.DISPATCHED
    assert team.assigned_call_id == 2
    entry = store.audit_log[0]
    assert (entry.action, entry.details) == ("Team Assigned", "Call ID: 2 to Team ID: 1")


def test_assign_busy_team_rejected(store):
    with pytest.raises(ConflictError):
        store.assign_team(2, 2)
    assert store.get_call(2).status == CallStatus.PENDING


def test_assign_unknown_team(store):
    with pytest.raises(NotFoundError):
        store.assign_team(2, 42)


# ─── Teams / users ─────────────────────────────────────────────────────────────

def test_update_team_replaces_roster(store):
    store.update_team(2, {"name": "Bravo", "grade": "ALS", "baseStation": "East", "memberIds": [5]})
    team = store.get_team(2)
    assert (team.name, team.grade, team.base_station) == ("Bravo", TeamGrade.ALS, "East")
    assert [u.username for u in store.members_of(2)] == ["emt4"]
    assert store.get_user(4).team_id is None
    assert store.audit_log[0].details == "Team ID: 2"


def test_update_team_validates_station(store):
    with pytest.raises(ValidationError):
        store.update_team(1, {"baseStation": "Central"})


def test_update_team_rejects_bad_member_ids(store):
    for member_ids in (["abc"], [None], "4"):
        with pytest.raises(ValidationError):
            store.update_team(2, {"memberIds": member_ids})
    assert [u.username for u in store.members_of(2)] == ["emt3"]


def test_assign_user_to_team(store):
    user = store.assign_user_to_team(5, 2)
    assert user.team_id == 2
    assert store.audit_log[0].details == "User ID: 5 to Team ID: 2"


def test_update_user_trims_certifications(store):
    user = store.update_user(5, {"certifications": " EMT-P, , ACLS "})
    assert user.certifications == ["EMT-P", "ACLS"]


def test_update_user_rejects_certifications_of_wrong_type(store):
    with pytest.raises(ValidationError):
        store.update_user(5, {"certifications": 7})
    with pytest.raises(ValidationError):
        store.update_user(5, {"certifications": {"EMT-P": True}})


def test_clock_out_request_and_approval(store):
    user = store.update_user_status(2, "Off Duty")
    assert user.status == EmtStatus.PENDING_CLOCK_OUT
    assert store.audit_log[0].details == "User ID: 2, Requested: Off Duty"

    user = store.approve_clock_in_out(2, True)
    assert user.status == EmtStatus.OFF_DUTY
    assert store.audit_log[0].details == "User ID: 2, Status: Off Duty, Approved: true"


def test_rejected_clock_in_returns_off_duty(store):
    user = store.approve_clock_in_out(5, False)
    assert user.status == EmtStatus.OFF_DUTY
    assert store.audit_log[0].details.endswith("Approved: false")


def test_break_applies_directly(store):
    assert store.update_user_status(3, "On Break").status == EmtStatus.ON_BREAK


def test_shift_status_only_for_emts(store):
    with pytest.raises(ValidationError):
        store.update_user_status(1, "On Duty")
    with pytest.raises(ConflictError):
        store.approve_clock_in_out(2, True)


# ─── PCRs ──────────────────────────────────────────────────────────────────────

def test_file_pcr_links_call(store):
    _complete(store, 2, 1)
    pcr = store.file_pcr(2, PCR_FORM, actor="emt1")
    assert pcr.id == 1
    assert pcr.is_synced is True
    assert store.get_call(2).pcr_id == 1
    assert store.audit_log[0].details == "Call ID: 2. Status: Synced"


def test_file_pcr_rules(store):
    with pytest.raises(ConflictError):
        store.file_pcr(2, PCR_FORM)  # still Pending
    with pytest.raises(ConflictError):
        store.file_pcr(3, PCR_FORM)  # already has a PCR
    _complete(store, 2, 1)
    with pytest.raises(ValidationError):
        store.file_pcr(2, {**PCR_FORM, "patientVitals": ""})
    with pytest.raises(ValidationError):
        store.file_pcr(2, {**PCR_FORM, "notes": 12})
    store.file_pcr(2, PCR_FORM)
    with pytest.raises(ConflictError):
        store.file_pcr(2, PCR_FORM)


def test_offline_pcr_synced_later(store):
    _complete(store, 2, 1)
    store.set_online(False)
    pcr = store.file_pcr(2, PCR_FORM)
    assert pcr.is_synced is False
    assert store.audit_log[0].details == "Call ID: 2. Status: Offline"

    assert store.sync() == {"pcrs": 1, "calls": 0}
    assert pcr.is_synced is True
    assert store.audit_log[0].details == "1 offline PCR(s) synced."


def test_going_online_schedules_sync(store):
    store.set_online(False)
    store.set_online(True)
    assert store._sync_timer is not None
    store.set_online(False)
    assert store._sync_timer is None


def test_sync_with_nothing_queued_is_silent(store):
    assert store.sync() == {"pcrs": 0, "calls": 0}
    assert store.audit_log == []


def test_view_pcr_audited(store):
    _complete(store, 2, 1)
    store.file_pcr(2, PCR_FORM)
    store.view_pcr(1, actor="supervisor1")
    assert store.audit_log[0].details == "Supervisor viewed PCR ID: 1 for Incident ID: 2"


# ─── Schedule ──────────────────────────────────────────────────────────────────

def _week(day_team=None, night_team=None):
    days = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
    return [
        {"day": d, "shifts": {"dayShift": {"teamId": day_team}, "nightShift": {"teamId": night_team}}}
        for d in days
    ]


def test_publish_full_schedule(store):
    schedule = store.update_schedule(_week(1, 2), actor="supervisor1")
    assert schedule[0].day_shift == 1
    assert store.schedule[6].night_shift == 2
    assert store.audit_log[0].action == "Schedule Published"


def test_publish_with_empty_slots_needs_confirmation(store):
    with pytest.raises(ConflictError) as exc:
        store.update_schedule(_week(1, None))
    assert exc.value.payload == {"unassigned": True}
    store.update_schedule(_week(1, None), allow_unassigned=True)
    assert store.schedule[0].night_shift is None


def test_publish_blocked_by_double_booking(store):
    with pytest.raises(ConflictError) as exc:
        store.update_schedule(_week(1, 1))
    conflicts = exc.value.payload["conflicts"]
    assert len(conflicts) == 14
    assert conflicts[0]["message"] == "Conflict: emt1, emt2 double-booked."


def test_schedule_rejects_unknown_team(store):
    with pytest.raises(ValidationError):
        store.update_schedule(_week(1, 9))


def test_schedule_requires_all_days(store):
    with pytest.raises(ValidationError):
        store.update_schedule(_week(1, 2)[:5])


# ─── Audit / admin ─────────────────────────────────────────────────────────────

def test_audit_entries_newest_first(store):
    store.log_audit_event("First")
    store.log_audit_event("Second", "details", user="admin1")
    assert [e.id for e in store.audit_log] == [2, 1]
    assert store.audit_log[1].user == "System"


def test_backup_snapshot(store):
    snapshot = store.backup(actor="admin1")
    assert set(snapshot) == {"users", "calls", "teams", "pcrs", "schedule", "audit_log"}
    assert snapshot["users"][0]["password"] == "password"
    assert store.audit_log[0].action == "Manual System Backup Triggered"
