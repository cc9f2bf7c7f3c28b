"""
Seed data for a fresh ERIS install, also used as the fallback when the
persisted state cannot be parsed.
Run from backend/:  python seed.py   (resets the stored state in MongoDB)
"""
from datetime import timedelta

from models import (
    DAYS,
    CallStatus,
    DaySchedule,
    EmergencyCall,
    EmtStatus,
    Team,
    TeamGrade,
    TeamStatus,
    User,
    UserRole,
    utcnow,
)


def initial_users() -> list:
    return [
        User(1, "dispatch1", UserRole.DISPATCHER, password="password"),
        User(2, "emt1", UserRole.EMT, password="password", status=EmtStatus.ON_DUTY, team_id=1,
             certifications=["EMT-P", "ACLS"]),
        User(3, "emt2", UserRole.EMT, password="password", status=EmtStatus.ON_DUTY, team_id=1,
             certifications=["EMT-B", "PALS"]),
        User(4, "emt3", UserRole.EMT, password="password", status=EmtStatus.ON_DUTY, team_id=2,
             certifications=["EMT-B"]),
        User(5, "emt4", UserRole.EMT, password="password", status=EmtStatus.PENDING_CLOCK_IN,
             certifications=["AEMT", "BLS"]),
        User(6, "supervisor1", UserRole.SUPERVISOR, password="password"),
        User(7, "coo1", UserRole.COO, password="password"),
        User(8, "admin1", UserRole.ADMIN, password="password"),
    ]


def initial_teams() -> list:
    return [
        Team(1, "Alpha Team", TeamGrade.ALS, "North", TeamStatus.AVAILABLE),
        Team(2, "Bravo Team", TeamGrade.BLS, "South", TeamStatus.DISPATCHED, assigned_call_id=1),
    ]


def initial_calls(now=None) -> list:
    now = now or utcnow()
    minutes = lambda n: now - timedelta(minutes=n)  # noqa: E731
    return [
        EmergencyCall(
            id=1,
            caller_name="John Doe",
            phone="555-1234",
            location="123 Main St, Anytown",
            description="Chest pain and difficulty breathing.",
            priority=1,
            timestamp=minutes(10),
            status=CallStatus.DISPATCHED,
            assigned_team_id=2,
            dispatch_timestamp=minutes(8),
        ),
        EmergencyCall(
            id=2,
            caller_name="Jane Smith",
            phone="555-5678",
            location="456 Oak Ave, Anytown",
            description="Fall from a ladder, possible broken leg.",
            priority=2,
            timestamp=minutes(30),
        ),
        EmergencyCall(
            id=3,
            caller_name="Bob Johnson",
            phone="555-8765",
            location="789 Pine Ln, Anytown",
            description="Minor car accident, driver complaining of neck pain.",
            priority=3,
            timestamp=minutes(60),
            status=CallStatus.COMPLETED,
            assigned_team_id=1,
            pcr_id=1,
            dispatch_timestamp=minutes(58),
            on_scene_timestamp=minutes(45),
            completed_timestamp=minutes(20),
        ),
    ]


def initial_schedule() -> list:
    return [DaySchedule(day) for day in DAYS]


def initial_state(now=None) -> dict:
    return {
        "users": initial_users(),
        "calls": initial_calls(now),
        "teams": initial_teams(),
        "pcrs": [],
        "schedule": initial_schedule(),
        "audit_log": [],
    }


if __name__ == "__main__":
    from db import MongoStatePersistence

    persistence = MongoStatePersistence()
    persistence.save_state(initial_state())
    print("Seeded ERIS state")
