"""
Pure derivations over the store's entity lists: dashboard filters/sorts and
SLA / performance statistics. Nothing here mutates state or logs audit events.
"""

from datetime import datetime, time, timedelta
from typing import List, Optional

from config import SLA_MINUTES
from models import (
    BASE_STATIONS,
    PRIORITIES,
    CallStatus,
    EmtStatus,
    TeamStatus,
    parse_ts,
    utcnow,
)

DATE_FILTER_DAYS = {"7d": 7, "30d": 30, "all": None}


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60


def _avg_minutes(total_seconds: float, count: int) -> float:
    return round(total_seconds / count / 60, 1)


def start_of_day(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def end_of_day(value) -> datetime:
    """Inclusive upper bound for a date-range filter given as a date string."""
    ts = parse_ts(value)
    return datetime.combine(ts.date(), time.max, tzinfo=ts.tzinfo)


def incident_age(timestamp: datetime, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    mins = round(_minutes(now - timestamp))
    if mins < 60:
        return f"{mins}m"
    return f"{mins / 60:.1f}h"


# ─── Dispatcher ────────────────────────────────────────────────────────────────

def pending_calls(calls, search: str = "", priority: Optional[int] = None) -> list:
    """Pending queue: most urgent first, oldest first within a priority."""
    term = (search or "").lower()
    matches = [
        c for c in calls
        if c.status == CallStatus.PENDING
        and (priority is None or c.priority == priority)
        and (term in c.location.lower() or term in c.description.lower())
    ]
    return sorted(matches, key=lambda c: (c.priority, c.timestamp))


def active_calls(calls) -> list:
    matches = [c for c in calls if c.status != CallStatus.PENDING and c.is_open]
    return sorted(matches, key=lambda c: c.timestamp, reverse=True)


def open_incidents(calls) -> list:
    return [c for c in calls if c.is_open]


def available_teams(teams) -> list:
    return [t for t in teams if t.status == TeamStatus.AVAILABLE]


def filter_teams(teams, grade: Optional[str] = None, station: Optional[str] = None) -> list:
    return [
        t for t in teams
        if (grade in (None, "", "all") or t.grade.value == grade)
        and (station in (None, "", "all") or t.base_station == station)
    ]


def find_duplicates(calls, phone: str, now: Optional[datetime] = None, window_hours: float = 2) -> list:
    """Open calls from the same phone number logged within the window."""
    cutoff = (now or utcnow()) - timedelta(hours=window_hours)
    return [c for c in calls if c.phone == phone and c.timestamp >= cutoff and c.is_open]


# ─── COO / SLA ─────────────────────────────────────────────────────────────────

def sla_calls(calls, teams, date_filter: str = "30d", station: str = "all", now: Optional[datetime] = None) -> list:
    """Completed calls with a full timeline, narrowed by date window and base station."""
    if date_filter not in DATE_FILTER_DAYS:
        raise ValueError(f"unknown date filter: {date_filter}")
    days = DATE_FILTER_DAYS[date_filter]
    cutoff = (now or utcnow()) - timedelta(days=days) if days else None
    teams_by_id = {t.id: t for t in teams}

    result = []
    for call in calls:
        if not call.has_full_timeline:
            continue
        if cutoff is not None and call.timestamp < cutoff:
            continue
        if station not in (None, "", "all"):
            team = teams_by_id.get(call.assigned_team_id)
            if team is None or team.base_station != station:
                continue
        result.append(call)
    return result


def response_minutes(call) -> float:
    """Total response: call received until the team is on scene."""
    return _minutes(call.on_scene_timestamp - call.timestamp)


def met_sla(call, sla_minutes: int = SLA_MINUTES) -> bool:
    return response_minutes(call) <= sla_minutes


def sla_stats(calls, sla_minutes: int = SLA_MINUTES) -> dict:
    """Averages and compliance over calls already filtered by sla_calls()."""
    if not calls:
        return {
            "avgDispatchMin": 0.0,
            "avgOnSceneMin": 0.0,
            "avgTotalResponseMin": 0.0,
            "slaCompliance": 0.0,
            "totalCompleted": 0,
        }

    dispatch_sec = on_scene_sec = response_sec = 0.0
    compliant = 0
    for call in calls:
        dispatch_sec += (call.dispatch_timestamp - call.timestamp).total_seconds()
        on_scene_sec += (call.on_scene_timestamp - call.dispatch_timestamp).total_seconds()
        response_sec += (call.on_scene_timestamp - call.timestamp).total_seconds()
        if met_sla(call, sla_minutes):
            compliant += 1

    total = len(calls)
    return {
        "avgDispatchMin": _avg_minutes(dispatch_sec, total),
        "avgOnSceneMin": _avg_minutes(on_scene_sec, total),
        "avgTotalResponseMin": _avg_minutes(response_sec, total),
        "slaCompliance": round(compliant / total * 100, 1),
        "totalCompleted": total,
    }


def sla_by_priority(calls, sla_minutes: int = SLA_MINUTES) -> dict:
    breakdown = {p: {"met": 0, "missed": 0} for p in PRIORITIES}
    for call in calls:
        if call.priority in breakdown:
            breakdown[call.priority]["met" if met_sla(call, sla_minutes) else "missed"] += 1
    return breakdown


# ─── Supervisor ────────────────────────────────────────────────────────────────

def team_performance(calls, teams) -> List[dict]:
    rows = []
    for team in teams:
        completed = [c for c in calls if c.assigned_team_id == team.id and c.has_full_timeline]
        if not completed:
            rows.append({
                "teamName": team.name,
                "callsCompleted": 0,
                "avgDispatchMin": None,
                "avgOnSceneMin": None,
                "avgTotalResponseMin": None,
            })
            continue
        stats = sla_stats(completed)
        rows.append({
            "teamName": team.name,
            "callsCompleted": stats["totalCompleted"],
            "avgDispatchMin": stats["avgDispatchMin"],
            "avgOnSceneMin": stats["avgOnSceneMin"],
            "avgTotalResponseMin": stats["avgTotalResponseMin"],
        })
    return rows


def demand_by_station(calls, teams) -> dict:
    """Call volume per base station; calls without a team are spread by id."""
    teams_by_id = {t.id: t for t in teams}
    counts = {station: 0 for station in BASE_STATIONS}
    for call in calls:
        team = teams_by_id.get(call.assigned_team_id)
        station = team.base_station if team else BASE_STATIONS[call.id % len(BASE_STATIONS)]
        counts[station] = counts.get(station, 0) + 1
    return counts


def status_counts(calls) -> dict:
    counts = {}
    for call in calls:
        counts[call.status.value] = counts.get(call.status.value, 0) + 1
    return counts


def priority_counts(calls) -> dict:
    counts = {p: 0 for p in PRIORITIES}
    for call in calls:
        counts[call.priority] = counts.get(call.priority, 0) + 1
    return counts


def todays_calls(calls, now: Optional[datetime] = None) -> list:
    midnight = start_of_day(now)
    return [c for c in calls if c.timestamp >= midnight]


def eod_stats(calls, now: Optional[datetime] = None) -> dict:
    today = todays_calls(calls, now)
    dispatched = [c for c in today if c.dispatch_timestamp]
    dispatch_sec = sum((c.dispatch_timestamp - c.timestamp).total_seconds() for c in dispatched)
    return {
        "totalCalls": len(today),
        "priorityCounts": {p: n for p, n in priority_counts(today).items() if n},
        "avgDispatchMin": _avg_minutes(dispatch_sec, len(dispatched)) if dispatched else 0.0,
    }


def supervisor_stats(calls, pcrs, users, teams, now: Optional[datetime] = None) -> dict:
    today_ids = {c.id for c in todays_calls(calls, now)}
    return {
        "openIncidents": len(open_incidents(calls)),
        "pcrsFiled": len(pcrs),
        "pcrsFiledToday": sum(1 for p in pcrs if p.call_id in today_ids),
        "personnelOnDuty": sum(1 for u in users if u.is_emt and u.status == EmtStatus.ON_DUTY),
        "teamsAvailable": len(available_teams(teams)),
    }


def search_personnel(users, term: str = "") -> list:
    term = (term or "").lower()
    return [u for u in users if u.is_emt and term in u.username.lower()]


def unassigned_emts(users) -> list:
    return [u for u in users if u.is_emt and u.team_id is None and u.status == EmtStatus.ON_DUTY]


def pending_clock_requests(users) -> list:
    return [u for u in users if u.status in (EmtStatus.PENDING_CLOCK_IN, EmtStatus.PENDING_CLOCK_OUT)]


def team_members(users, team_id) -> list:
    return [u for u in users if team_id is not None and u.team_id == team_id]


def filter_pcrs(
    pcrs,
    calls,
    users,
    term: str = "",
    start: Optional[str] = None,
    end: Optional[str] = None,
    priority: Optional[int] = None,
    emt: str = "",
):
    """
    Record review search. Each PCR is matched through its call:
      term     -> PCR id, call id, call location or transfer destination
      start/end-> call timestamp (end date inclusive)
      priority -> call priority
      emt      -> username of a member of the call's assigned team
    Newest PCR first.
    """
    calls_by_id = {c.id: c for c in calls}
    term = (term or "").lower()
    emt = (emt or "").lower()
    start_ts = parse_ts(start) if start else None
    end_ts = end_of_day(end) if end else None

    result = []
    for pcr in pcrs:
        call = calls_by_id.get(pcr.call_id)
        if call is None:
            continue
        if term and not (
            term in str(pcr.id)
            or term in str(pcr.call_id)
            or term in call.location.lower()
            or term in pcr.transfer_destination.lower()
        ):
            continue
        if start_ts and call.timestamp < start_ts:
            continue
        if end_ts and call.timestamp > end_ts:
            continue
        if priority is not None and call.priority != priority:
            continue
        if emt:
            names = " ".join(m.username.lower() for m in team_members(users, call.assigned_team_id))
            if not names or emt not in names:
                continue
        result.append(pcr)
    return sorted(result, key=lambda p: p.id, reverse=True)


# ─── Admin ─────────────────────────────────────────────────────────────────────

def filter_audit_log(
    logs,
    users,
    user: str = "",
    action: str = "",
    role: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> list:
    roles_by_name = {u.username: u.role for u in users}
    user = (user or "").lower()
    start_ts = parse_ts(start) if start else None
    end_ts = end_of_day(end) if end else None

    def matches(entry) -> bool:
        if user and user not in entry.user.lower():
            return False
        if action and entry.action != action:
            return False
        if role not in (None, "", "all"):
            entry_role = roles_by_name.get(entry.user)
            if entry_role is None or entry_role.value != role:
                return False
        if start_ts and entry.timestamp < start_ts:
            return False
        if end_ts and entry.timestamp > end_ts:
            return False
        return True

    return [entry for entry in logs if matches(entry)]


def unique_actions(logs) -> list:
    seen = []
    for entry in logs:
        if entry.action not in seen:
            seen.append(entry.action)
    return seen


# ─── EMT ───────────────────────────────────────────────────────────────────────

def emt_overview(user, calls, teams, pcrs, now: Optional[datetime] = None) -> dict:
    """Everything the EMT dashboard shows for one crew member."""
    team = next((t for t in teams if user.team_id is not None and t.id == user.team_id), None)
    assignment = None
    completed_today = []
    if team is not None:
        assignment = next(
            (c for c in calls if c.assigned_team_id == team.id and c.status != CallStatus.PENDING and c.is_open),
            None,
        )
        midnight = start_of_day(now)
        completed_today = [
            c for c in calls
            if c.assigned_team_id == team.id and c.status == CallStatus.COMPLETED and c.timestamp >= midnight
        ]
    team_call_ids = {c.id for c in calls if user.team_id is not None and c.assigned_team_id == user.team_id}
    unsynced = [p for p in pcrs if not p.is_synced and p.call_id in team_call_ids]
    return {
        "team": team,
        "assignedCall": assignment,
        "completedToday": completed_today,
        "completedByPriority": priority_counts(completed_today),
        "unsyncedPcrCount": len(unsynced),
    }

