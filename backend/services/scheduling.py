"""
Weekly roster validation.

Rules:
  - nobody works more than 12 hours a day, so no EMT sits on both the day and
    night shift of the same day
  - an ALS team on shift needs at least one member holding an ALS certification
"""

from dataclasses import dataclass
from typing import List

from models import SHIFTS, TeamGrade

ALS_CERTIFICATIONS = ("EMT-P", "ACLS", "PALS")


@dataclass
class ScheduleConflict:
    day: str
    shift: str  # "dayShift" | "nightShift"
    message: str

    def to_dict(self) -> dict:
        return {"day": self.day, "shift": self.shift, "message": self.message}


def _members_by_team(users) -> dict:
    members = {}
    for user in users:
        if user.team_id is not None:
            members.setdefault(user.team_id, []).append(user)
    return members


def validate_schedule(schedule, teams, users) -> List[ScheduleConflict]:
    """Return every rule violation in the schedule; an empty list means publishable."""
    teams_by_id = {t.id: t for t in teams}
    members = _members_by_team(users)
    conflicts = []

    for day in schedule:
        rostered = {}
        for shift in SHIFTS:
            team_id = day.team_for(shift)
            rostered[shift] = [u.id for u in members.get(team_id, [])] if team_id in teams_by_id else []

        double_booked = [uid for uid in rostered["dayShift"] if uid in rostered["nightShift"]]
        if double_booked:
            names = ", ".join(u.username for u in users if u.id in double_booked)
            message = f"Conflict: {names} double-booked."
            conflicts.append(ScheduleConflict(day.day, "dayShift", message))
            conflicts.append(ScheduleConflict(day.day, "nightShift", message))

        for shift in SHIFTS:
            team = teams_by_id.get(day.team_for(shift))
            if team is None or team.grade != TeamGrade.ALS:
                continue
            has_als_cert = any(
                cert in ALS_CERTIFICATIONS
                for member in members.get(team.id, [])
                for cert in (member.certifications or [])
            )
            if not has_als_cert:
                conflicts.append(ScheduleConflict(day.day, shift, "ALS team requires paramedic."))

    return conflicts


def has_empty_slots(schedule) -> bool:
    return any(day.day_shift is None or day.night_shift is None for day in schedule)


def unknown_teams(schedule, teams) -> List[int]:
    """Team ids referenced by the schedule that do not exist."""
    known = {t.id for t in teams}
    return sorted({
        team_id
        for day in schedule
        for team_id in (day.day_shift, day.night_shift)
        if team_id is not None and team_id not in known
    })
