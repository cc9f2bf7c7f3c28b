"""
Roster rule tests (double booking, ALS coverage, empty slots).
"""

from models import DaySchedule, Team, TeamGrade, User, UserRole
from seed import initial_schedule, initial_teams, initial_users
from services.scheduling import has_empty_slots, unknown_teams, validate_schedule


def _schedule(day_team, night_team):
    return [DaySchedule("Monday", day_team, night_team)] + initial_schedule()[1:]


def test_initial_schedule_is_empty_week():
    schedule = initial_schedule()
    assert [d.day for d in schedule][0] == "Monday"
    assert len(schedule) == 7
    assert has_empty_slots(schedule)


def test_valid_week_has_no_conflicts():
    schedule = [DaySchedule(d.day, 1, 2) for d in initial_schedule()]
    assert validate_schedule(schedule, initial_teams(), initial_users()) == []
    assert not has_empty_slots(schedule)


def test_same_team_both_shifts_double_books_members():
    conflicts = validate_schedule(_schedule(2, 2), initial_teams(), initial_users())
    assert [(c.day, c.shift) for c in conflicts] == [("Monday", "dayShift"), ("Monday", "nightShift")]
    assert conflicts[0].message == "Conflict: emt3 double-booked."


def test_als_team_without_paramedic():
    teams = initial_teams() + [Team(3, "Charlie Team", TeamGrade.ALS, "East")]
    users = initial_users() + [User(9, "emt9", UserRole.EMT, team_id=3, certifications=["EMT-B"])]
    conflicts = validate_schedule(_schedule(None, 3), teams, users)
    assert len(conflicts) == 1
    assert conflicts[0].to_dict() == {"day": "Monday", "shift": "nightShift", "message": "ALS team requires paramedic."}


def test_pals_counts_as_als_certification():
    teams = initial_teams() + [Team(3, "Charlie Team", TeamGrade.ALS, "East")]
    users = initial_users() + [User(9, "emt9", UserRole.EMT, team_id=3, certifications=["PALS"])]
    assert validate_schedule(_schedule(3, None), teams, users) == []


def test_unknown_team_ids():
    assert unknown_teams(_schedule(1, 7), initial_teams()) == [7]
