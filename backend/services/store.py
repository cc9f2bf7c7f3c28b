"""
ERIS store: the in-process state reducer behind every dashboard.

Holds users, calls, teams, PCRs, the weekly schedule and the audit log.
Every mutation runs under one lock, appends an audit entry, persists the
touched collections as JSON blobs and pushes an SSE event. No Flask here;
routes translate the exceptions below into HTTP status codes.

Call lifecycle:
  Pending → Dispatched → On Scene → (Transporting →) Completed
  any open status → Cancelled
The assigned team's status follows the call; closing a call frees the team.
"""

import logging
import threading
from typing import Optional

from pymongo.errors import PyMongoError

import events
from config import DUPLICATE_WINDOW_HOURS, GEOCODE_CALLS, SYNC_DELAY_SECONDS
from db import STORAGE_KEYS, MongoStatePersistence, serialize_entity
from models import (
    BASE_STATIONS,
    DAYS,
    PRIORITIES,
    AuditLogEntry,
    CallStatus,
    DaySchedule,
    EmergencyCall,
    EmtStatus,
    PatientCareRecord,
    TeamGrade,
    TeamStatus,
    User,
    UserRole,
    utcnow,
)
from seed import initial_state
from services import analytics
from services.scheduling import has_empty_slots, unknown_teams, validate_schedule

logger = logging.getLogger(__name__)

SYSTEM_USER = "System"

ALLOWED_TRANSITIONS = {
    CallStatus.PENDING: {CallStatus.DISPATCHED, CallStatus.CANCELLED},
    CallStatus.DISPATCHED: {CallStatus.ON_SCENE, CallStatus.CANCELLED},
    CallStatus.ON_SCENE: {CallStatus.TRANSPORTING, CallStatus.COMPLETED, CallStatus.CANCELLED},
    CallStatus.TRANSPORTING: {CallStatus.COMPLETED, CallStatus.CANCELLED},
    CallStatus.COMPLETED: set(),
    CallStatus.CANCELLED: set(),
}

# Team status that mirrors each call status (closing statuses free the team)
TEAM_STATUS_FOR_CALL = {
    CallStatus.DISPATCHED: TeamStatus.DISPATCHED,
    CallStatus.ON_SCENE: TeamStatus.ON_SCENE,
    CallStatus.TRANSPORTING: TeamStatus.TRANSPORTING,
    CallStatus.COMPLETED: TeamStatus.AVAILABLE,
    CallStatus.CANCELLED: TeamStatus.AVAILABLE,
}

CALL_REQUIRED_FIELDS = ("callerName", "phone", "location", "description")
PCR_REQUIRED_FIELDS = ("patientVitals", "treatmentsAdministered", "transferDestination")


class StoreError(Exception):
    """Base class for rule violations raised by the store."""

    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class ValidationError(StoreError):
    """Missing or malformed input."""


class NotFoundError(StoreError):
    """Referenced entity does not exist."""


class ConflictError(StoreError):
    """Input is well formed but breaks a business rule in the current state."""


class LogCallResult:
    """Outcome of log_call(): "logged", "offline" or "duplicate"."""

    def __init__(self, outcome: str, call: Optional[EmergencyCall] = None, duplicates=None, message: str = ""):
        self.outcome = outcome
        self.call = call
        self.duplicates = duplicates or []
        self.message = message


def _enum_value(enum_type, value, field_name: str):
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_type)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def _parse_priority(value) -> int:
    try:
        priority = int(value)
    except (TypeError, ValueError):
        raise ValidationError("priority must be 1, 2, 3 or 4")
    if priority not in PRIORITIES:
        raise ValidationError("priority must be 1, 2, 3 or 4")
    return priority


def _require(data: dict, fields) -> None:
    not_text = [f for f in fields if data.get(f) is not None and not isinstance(data[f], str)]
    if not_text:
        raise ValidationError(f"{', '.join(not_text)} must be text", {"invalid": not_text})
    missing = [f for f in fields if not (data.get(f) or "").strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", {"missing": missing})


def _optional_text(data: dict, field: str) -> str:
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text", {"invalid": [field]})
    return value.strip()


def _parse_ids(value, field: str) -> set:
    if value is None:
        return set()
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list of ids")
    try:
        return {int(v) for v in value}
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a list of ids")


def parse_certifications(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        raise ValidationError("certifications must be a list or comma-separated text")
    return [str(c).strip() for c in items if str(c).strip()]


class DispatchStore:
    def __init__(self, persistence=None, sync_delay: float = SYNC_DELAY_SECONDS, clock=utcnow, geocoder=None):
        self.persistence = persistence
        self.sync_delay = sync_delay
        self.clock = clock
        self.geocoder = geocoder
        self.is_online = True
        self._lock = threading.RLock()
        self._sync_timer = None
        self._apply_state(self._load_state())

    # ─── Loading / persistence ─────────────────────────────────────────────────

    def _load_state(self) -> dict:
        seed = initial_state(self.clock())
        if self.persistence is None:
            return seed
        try:
            saved = self.persistence.load_state()
        except (PyMongoError, ValueError, KeyError, TypeError) as e:
            logger.error("[Store] Could not load persisted state, falling back to seed data: %s", e)
            return seed
        seed.update(saved)
        return seed

    def _apply_state(self, state: dict) -> None:
        self.users = state["users"]
        self.calls = state["calls"]
        self.teams = state["teams"]
        self.pcrs = state["pcrs"]
        self.schedule = state["schedule"]
        self.audit_log = state["audit_log"]

    def _commit(self, *names) -> None:
        """Best-effort write of the named collections; in-memory state stays authoritative."""
        if self.persistence is None:
            return
        for name in names:
            try:
                self.persistence.save(name, getattr(self, name))
            except PyMongoError as e:
                logger.error("[Store] Failed to persist %s: %s", name, e)

    # ─── Lookups ───────────────────────────────────────────────────────────────

    def get_user(self, user_id: int) -> User:
        user = next((u for u in self.users if u.id == user_id), None)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def find_user(self, username: str) -> Optional[User]:
        return next((u for u in self.users if u.username == username), None)

    def get_call(self, call_id: int) -> EmergencyCall:
        call = next((c for c in self.calls if c.id == call_id), None)
        if call is None:
            raise NotFoundError(f"Call {call_id} not found")
        return call

    def get_team(self, team_id: int):
        team = next((t for t in self.teams if t.id == team_id), None)
        if team is None:
            raise NotFoundError(f"Team {team_id} not found")
        return team

    def get_pcr(self, pcr_id: int) -> PatientCareRecord:
        pcr = next((p for p in self.pcrs if p.id == pcr_id), None)
        if pcr is None:
            raise NotFoundError(f"PCR {pcr_id} not found")
        return pcr

    def members_of(self, team_id: int) -> list:
        return analytics.team_members(self.users, team_id)

    def team_dict(self, team) -> dict:
        return team.to_dict(members=self.members_of(team.id))

    @staticmethod
    def _next_id(entities) -> int:
        return max((e.id for e in entities), default=0) + 1

    # ─── Audit ─────────────────────────────────────────────────────────────────

    def log_audit_event(self, action: str, details: Optional[str] = None, user: Optional[str] = None) -> AuditLogEntry:
        with self._lock:
            entry = AuditLogEntry(
                id=len(self.audit_log) + 1,
                timestamp=self.clock(),
                user=user or SYSTEM_USER,
                action=action,
                details=details,
            )
            self.audit_log.insert(0, entry)
            self._commit("audit_log")
        logger.info("[Audit] %s: %s %s", entry.user, action, details or "")
        return entry

    # ─── Auth ──────────────────────────────────────────────────────────────────

    def login(self, username: str, password: str) -> Optional[User]:
        user = self.find_user(username)
        if user is None or user.password != password:
            return None
        self.log_audit_event("User Login", user=user.username)
        return user

    def signup(self, username: str, password: str, role) -> Optional[User]:
        if not isinstance(username, str) or not isinstance(password, str):
            raise ValidationError("Username and password must be text.")
        username = username.strip()
        if not username or not password:
            raise ValidationError("Username and password are required.")
        role = _enum_value(UserRole, role, "role")
        with self._lock:
            if self.find_user(username) is not None:
                return None
            is_emt = role == UserRole.EMT
            user = User(
                id=self._next_id(self.users),
                username=username,
                password=password,
                role=role,
                status=EmtStatus.OFF_DUTY if is_emt else None,
                certifications=[] if is_emt else None,
            )
            self.users.append(user)
            self._commit("users")
            self.log_audit_event("User Signed Up", f"New user: {user.username}", user=user.username)
        events.publish("user_updated", user=user.to_dict())
        return user

    def logout(self, actor: Optional[str] = None) -> None:
        self.log_audit_event("User Logout", user=actor)

    # ─── Calls ─────────────────────────────────────────────────────────────────

    def _new_call(self, data: dict, call_id: int, synced: bool) -> EmergencyCall:
        call = EmergencyCall(
            id=call_id,
            caller_name=data["callerName"].strip(),
            phone=data["phone"].strip(),
            location=data["location"].strip(),
            landmark=_optional_text(data, "landmark"),
            description=data["description"].strip(),
            priority=_parse_priority(data.get("priority", 3)),
            timestamp=self.clock(),
            status=CallStatus.PENDING,
            is_synced=synced,
        )
        if self.geocoder is not None and synced:
            call.pin = self.geocoder(call.location)
        return call

    def _insert_call(self, call: EmergencyCall, action: str, details: str, actor: Optional[str]) -> None:
        self.calls.insert(0, call)
        self._commit("calls")
        self.log_audit_event(action, details, user=actor)
        events.publish("call_logged", call=call.to_dict())

    def log_call(self, data: dict, actor: Optional[str] = None) -> LogCallResult:
        """
        Log a new emergency call from the dispatcher form.
        Offline: queued locally with a timestamp id and isSynced=False.
        Online: open calls from the same phone within the duplicate window
        are returned instead of creating anything.
        """
        _require(data, CALL_REQUIRED_FIELDS)
        _parse_priority(data.get("priority", 3))

        with self._lock:
            if not self.is_online:
                call_id = max(int(self.clock().timestamp() * 1000), self._next_id(self.calls))
                call = self._new_call(data, call_id, synced=False)
                self._insert_call(call, "Offline Call Logged", f"Loc: {call.location}", actor)
                return LogCallResult("offline", call, message="Call saved locally! It will sync when you are back online.")

            duplicates = analytics.find_duplicates(
                self.calls, data["phone"].strip(), self.clock(), DUPLICATE_WINDOW_HOURS
            )
            if duplicates:
                return LogCallResult("duplicate", duplicates=duplicates)

            call = self._new_call(data, self._next_id(self.calls), synced=True)
            self._insert_call(call, "Call Logged", f"ID: {call.id}, Loc: {call.location}", actor)
            return LogCallResult("logged", call, message=f"Emergency call (ID: {call.id}) logged successfully!")

    def create_call_anyway(self, data: dict, actor: Optional[str] = None) -> EmergencyCall:
        """Create the call even though duplicate detection flagged it."""
        _require(data, CALL_REQUIRED_FIELDS)
        with self._lock:
            call = self._new_call(data, self._next_id(self.calls), synced=True)
            self._insert_call(call, "Duplicate Call Logged as New", f"ID: {call.id}, Loc: {call.location}", actor)
        return call

    def link_call(self, existing_call_id: int, data: dict, actor: Optional[str] = None) -> EmergencyCall:
        """Attach a repeat report to an existing incident as a note."""
        _require(data, CALL_REQUIRED_FIELDS)
        with self._lock:
            call = self.get_call(existing_call_id)
            stamp = self.clock().astimezone().strftime("%Y-%m-%d %H:%M:%S")
            note = (
                f"[{stamp}] New report from {data['callerName'].strip()} ({data['phone'].strip()}): "
                f"\"{data['description'].strip()}\""
            )
            call.notes.append(note)
            self._commit("calls")
            self.log_audit_event(
                "Call Linked to Incident", f"New info added to Incident ID: {existing_call_id}", user=actor
            )
        events.publish("call_updated", call=call.to_dict())
        return call

    def _check_transition(self, call: EmergencyCall, status: CallStatus) -> None:
        if status not in ALLOWED_TRANSITIONS[call.status]:
            raise ConflictError(
                f"Call {call.id} cannot move from {call.status.value} to {status.value}",
                {"currentStatus": call.status.value},
            )

    def update_call_status(self, call_id: int, status, team_id: Optional[int] = None, actor: Optional[str] = None) -> EmergencyCall:
        status = _enum_value(CallStatus, status, "status")
        with self._lock:
            call = self.get_call(call_id)
            self._check_transition(call, status)
            team = None
            if team_id is not None:
                team = self.get_team(team_id)
                if call.assigned_team_id is None:
                    if team.status != TeamStatus.AVAILABLE:
                        raise ConflictError(f"{team.name} is not available ({team.status.value})")
                elif call.assigned_team_id != team.id:
                    raise ConflictError(f"Call {call_id} is assigned to team {call.assigned_team_id}, not {team.id}")
            elif call.assigned_team_id is not None:
                team = next((t for t in self.teams if t.id == call.assigned_team_id), None)

            now = self.clock()
            call.status = status
            if team is not None:
                call.assigned_team_id = team.id
                team.assigned_call_id = call.id
            if status == CallStatus.DISPATCHED:
                call.dispatch_timestamp = now
            elif status == CallStatus.ON_SCENE:
                call.on_scene_timestamp = now
            elif status == CallStatus.COMPLETED:
                call.completed_timestamp = now
            self._commit("calls")
            self.log_audit_event("Call Status Updated", f"ID: {call_id}, New Status: {status.value}", user=actor)

            if team is not None:
                if status in (CallStatus.COMPLETED, CallStatus.CANCELLED):
                    team.assigned_call_id = None
                self.update_team_status(team.id, TEAM_STATUS_FOR_CALL[status], actor=actor)
        events.publish("call_updated", call=call.to_dict())
        return call

    def assign_team(self, call_id: int, team_id: int, actor: Optional[str] = None) -> EmergencyCall:
        with self._lock:
            call = self.get_call(call_id)
            team = self.get_team(team_id)
            self._check_transition(call, CallStatus.DISPATCHED)
            if team.status != TeamStatus.AVAILABLE:
                raise ConflictError(f"{team.name} is not available ({team.status.value})")

            call.assigned_team_id = team.id
            call.status = CallStatus.DISPATCHED
            call.dispatch_timestamp = self.clock()
            team.assigned_call_id = call.id
            self._commit("calls")
            self.update_team_status(team.id, TeamStatus.DISPATCHED, actor=actor)
            self.log_audit_event("Team Assigned", f"Call ID: {call_id} to Team ID: {team_id}", user=actor)
        events.publish("call_updated", call=call.to_dict())
        return call

    # ─── Teams ─────────────────────────────────────────────────────────────────

    def update_team_status(self, team_id: int, status, actor: Optional[str] = None):
        status = _enum_value(TeamStatus, status, "status")
        with self._lock:
            team = self.get_team(team_id)
            team.status = status
            self._commit("teams")
            self.log_audit_event("Team Status Updated", f"Team ID: {team_id}, New Status: {status.value}", user=actor)
            payload = self.team_dict(team)
        events.publish("team_updated", team=payload)
        return team

    def update_team(self, team_id: int, data: dict, actor: Optional[str] = None):
        """Edit a team's name/grade/base station and replace its member list."""
        with self._lock:
            team = self.get_team(team_id)
            name = data.get("name", team.name)
            if not str(name or "").strip():
                raise ValidationError("name required")
            grade = _enum_value(TeamGrade, data.get("grade", team.grade.value), "grade")
            station = data.get("baseStation", team.base_station)
            if station not in BASE_STATIONS:
                raise ValidationError(f"baseStation must be one of: {', '.join(BASE_STATIONS)}")

            if "memberIds" in data:
                new_ids = _parse_ids(data["memberIds"], "memberIds")
                for uid in new_ids:
                    self.get_user(uid)
                for user in self.users:
                    if user.id in new_ids:
                        user.team_id = team.id
                    elif user.team_id == team.id:
                        user.team_id = None
                self._commit("users")

            team.name = str(name).strip()
            team.grade = grade
            team.base_station = station
            self._commit("teams")
            self.log_audit_event("Team Updated", f"Team ID: {team_id}", user=actor)
            payload = self.team_dict(team)
        events.publish("team_updated", team=payload)
        return team

    # ─── Users / shifts ────────────────────────────────────────────────────────

    def assign_user_to_team(self, user_id: int, team_id: int, actor: Optional[str] = None) -> User:
        with self._lock:
            user = self.get_user(user_id)
            self.get_team(team_id)
            user.team_id = team_id
            self._commit("users")
            self.log_audit_event("User Assigned to Team", f"User ID: {user_id} to Team ID: {team_id}", user=actor)
        events.publish("user_updated", user=user.to_dict())
        return user

    def update_user(self, user_id: int, data: dict, actor: Optional[str] = None) -> User:
        """Supervisor profile edit; certifications are the editable field."""
        with self._lock:
            user = self.get_user(user_id)
            if "certifications" in data:
                user.certifications = parse_certifications(data["certifications"])
            self._commit("users")
            self.log_audit_event("User Profile Updated", f"User ID: {user_id}", user=actor)
        events.publish("user_updated", user=user.to_dict())
        return user

    def update_user_status(self, user_id: int, status, actor: Optional[str] = None) -> User:
        """
        EMT shift status request. Clocking in or out needs supervisor approval,
        so On Duty / Off Duty requests park the user in the matching pending state.
        """
        requested = _enum_value(EmtStatus, status, "status")
        with self._lock:
            user = self.get_user(user_id)
            if not user.is_emt:
                raise ValidationError("Only EMTs have a shift status")
            if requested == EmtStatus.ON_DUTY:
                user.status = EmtStatus.PENDING_CLOCK_IN
            elif requested == EmtStatus.OFF_DUTY:
                user.status = EmtStatus.PENDING_CLOCK_OUT
            else:
                user.status = requested
            self._commit("users")
            self.log_audit_event(
                "Shift Status Change Requested", f"User ID: {user_id}, Requested: {requested.value}", user=actor
            )
        events.publish("user_updated", user=user.to_dict())
        return user

    def approve_clock_in_out(self, user_id: int, approved: bool, actor: Optional[str] = None) -> User:
        with self._lock:
            user = self.get_user(user_id)
            if user.status not in (EmtStatus.PENDING_CLOCK_IN, EmtStatus.PENDING_CLOCK_OUT):
                raise ConflictError(f"User {user_id} has no pending clock-in/out request")
            clocking_in = user.status == EmtStatus.PENDING_CLOCK_IN
            if approved:
                user.status = EmtStatus.ON_DUTY if clocking_in else EmtStatus.OFF_DUTY
            else:
                # Rejected: back to where the EMT was before the request
                user.status = EmtStatus.OFF_DUTY if clocking_in else EmtStatus.ON_DUTY
            self._commit("users")
            self.log_audit_event(
                "Shift Status Change Reviewed",
                f"User ID: {user_id}, Status: {user.status.value}, Approved: {str(bool(approved)).lower()}",
                user=actor,
            )
        events.publish("user_updated", user=user.to_dict())
        return user

    # ─── PCRs ──────────────────────────────────────────────────────────────────

    def file_pcr(self, call_id: int, data: dict, actor: Optional[str] = None) -> PatientCareRecord:
        """File the patient care record for a completed call. Offline PCRs wait for sync."""
        _require(data, PCR_REQUIRED_FIELDS)
        with self._lock:
            call = self.get_call(call_id)
            if call.status != CallStatus.COMPLETED:
                raise ConflictError(f"Call {call_id} must be Completed before filing a PCR")
            if call.pcr_id is not None:
                raise ConflictError(f"Call {call_id} already has PCR {call.pcr_id}")

            pcr = PatientCareRecord(
                id=self._next_id(self.pcrs),
                call_id=call.id,
                patient_vitals=data["patientVitals"].strip(),
                treatments_administered=data["treatmentsAdministered"].strip(),
                medications=_optional_text(data, "medications"),
                transfer_destination=data["transferDestination"].strip(),
                notes=_optional_text(data, "notes"),
                is_synced=self.is_online,
            )
            self.pcrs.append(pcr)
            call.pcr_id = pcr.id
            self._commit("pcrs", "calls")
            self.log_audit_event(
                "PCR Filed", f"Call ID: {call.id}. Status: {'Synced' if self.is_online else 'Offline'}", user=actor
            )
        events.publish("pcr_filed", pcr=pcr.to_dict())
        return pcr

    def view_pcr(self, pcr_id: int, actor: Optional[str] = None) -> PatientCareRecord:
        pcr = self.get_pcr(pcr_id)
        self.log_audit_event("PCR Viewed", f"Supervisor viewed PCR ID: {pcr.id} for Incident ID: {pcr.call_id}", user=actor)
        return pcr

    # ─── Schedule ──────────────────────────────────────────────────────────────

    def parse_schedule(self, days) -> list:
        if not isinstance(days, list):
            raise ValidationError("schedule must be a list of days")
        try:
            parsed = {d.day: d for d in (DaySchedule.from_dict(item) for item in days)}
        except (KeyError, TypeError, ValueError, AttributeError):
            raise ValidationError("malformed schedule entry")
        missing = [day for day in DAYS if day not in parsed]
        if missing:
            raise ValidationError(f"schedule is missing: {', '.join(missing)}")
        schedule = [parsed[day] for day in DAYS]
        bad = unknown_teams(schedule, self.teams)
        if bad:
            raise ValidationError(f"unknown team id(s): {', '.join(map(str, bad))}")
        return schedule

    def check_schedule(self, days) -> list:
        return validate_schedule(self.parse_schedule(days), self.teams, self.users)

    def update_schedule(self, days, allow_unassigned: bool = False, actor: Optional[str] = None) -> list:
        with self._lock:
            schedule = self.parse_schedule(days)
            conflicts = validate_schedule(schedule, self.teams, self.users)
            if conflicts:
                raise ConflictError("Schedule has conflicts", {"conflicts": [c.to_dict() for c in conflicts]})
            if has_empty_slots(schedule) and not allow_unassigned:
                raise ConflictError(
                    "Warning: Some shifts are unassigned. Publish with allowUnassigned to confirm.",
                    {"unassigned": True},
                )
            self.schedule = schedule
            self._commit("schedule")
            self.log_audit_event("Schedule Published", user=actor)
        events.publish("schedule_published", schedule=[d.to_dict() for d in schedule])
        return schedule

    # ─── Connectivity / sync ───────────────────────────────────────────────────

    def set_online(self, online: bool, actor: Optional[str] = None) -> None:
        """Toggle simulated connectivity. Coming back online syncs queued records after a short delay."""
        with self._lock:
            was_online = self.is_online
            self.is_online = bool(online)
            if self._sync_timer is not None:
                self._sync_timer.cancel()
                self._sync_timer = None
            if self.is_online and not was_online:
                self._sync_timer = threading.Timer(self.sync_delay, self.sync, kwargs={"actor": actor})
                self._sync_timer.daemon = True
                self._sync_timer.start()
        logger.info("[Sync] Connectivity %s", "online" if self.is_online else "offline")
        events.publish("connectivity", online=self.is_online)

    def sync(self, actor: Optional[str] = None) -> dict:
        """Mark every offline PCR and call as synced."""
        with self._lock:
            self._sync_timer = None
            unsynced_pcrs = [p for p in self.pcrs if not p.is_synced]
            unsynced_calls = [c for c in self.calls if not c.is_synced]
            if unsynced_pcrs:
                logger.info("[Sync] Syncing %d PCRs...", len(unsynced_pcrs))
                for pcr in unsynced_pcrs:
                    pcr.is_synced = True
                self._commit("pcrs")
                self.log_audit_event("System Sync", f"{len(unsynced_pcrs)} offline PCR(s) synced.", user=actor)
            if unsynced_calls:
                logger.info("[Sync] Syncing %d calls...", len(unsynced_calls))
                for call in unsynced_calls:
                    call.is_synced = True
                self._commit("calls")
                self.log_audit_event("System Sync", f"{len(unsynced_calls)} offline call(s) synced.", user=actor)
        result = {"pcrs": len(unsynced_pcrs), "calls": len(unsynced_calls)}
        events.publish("sync_completed", **result)
        return result

    # ─── Admin ─────────────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        with self._lock:
            return {name: [serialize_entity(e) for e in getattr(self, name)] for name in STORAGE_KEYS}

    def backup(self, actor: Optional[str] = None) -> dict:
        self.log_audit_event("Manual System Backup Triggered", user=actor)
        return self.snapshot()


_store: Optional[DispatchStore] = None
_store_lock = threading.Lock()


def get_store() -> DispatchStore:
    """Return the process-wide store, loading it from MongoDB on first use."""
    global _store
    with _store_lock:
        if _store is None:
            geocoder = None
            if GEOCODE_CALLS:
                from services.geocode import geocode_location
                geocoder = geocode_location
            _store = DispatchStore(persistence=MongoStatePersistence(), geocoder=geocoder)
        return _store


def set_store(store: Optional[DispatchStore]) -> None:
    global _store
    with _store_lock:
        _store = store
