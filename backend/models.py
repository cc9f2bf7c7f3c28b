"""
Entity types for the ERIS datastore.
Python attributes are snake_case; to_dict()/from_dict() speak the camelCase
JSON shape the dashboards and the persisted blobs use.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class UserRole(str, Enum):
    DISPATCHER = "Dispatcher"
    EMT = "EMT"
    SUPERVISOR = "Supervisor"
    COO = "COO"
    ADMIN = "Admin"


class EmtStatus(str, Enum):
    ON_DUTY = "On Duty"
    OFF_DUTY = "Off Duty"
    ON_BREAK = "On Break"
    PENDING_CLOCK_IN = "Pending Clock-In"
    PENDING_CLOCK_OUT = "Pending Clock-Out"


class CallStatus(str, Enum):
    PENDING = "Pending"
    DISPATCHED = "Dispatched"
    ON_SCENE = "On Scene"
    TRANSPORTING = "Transporting"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TeamStatus(str, Enum):
    AVAILABLE = "Available"
    DISPATCHED = "Dispatched"
    ON_SCENE = "On Scene"
    TRANSPORTING = "Transporting"
    AT_HOSPITAL = "At Hospital"
    CLEARING = "Clearing"


class TeamGrade(str, Enum):
    ALS = "ALS"
    BLS = "BLS"


BASE_STATIONS = ("North", "South", "East", "West")
DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
SHIFTS = ("dayShift", "nightShift")
PRIORITIES = (1, 2, 3, 4)

CLOSED_CALL_STATUSES = (CallStatus.COMPLETED, CallStatus.CANCELLED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (JS style trailing 'Z' included) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class User:
    id: int
    username: str
    role: UserRole
    password: str = ""
    status: Optional[EmtStatus] = None
    team_id: Optional[int] = None
    certifications: Optional[List[str]] = None

    @property
    def is_emt(self) -> bool:
        return self.role == UserRole.EMT

    def to_dict(self, include_password: bool = False) -> dict:
        d = {
            "id": self.id,
            "username": self.username,
            "role": self.role.value,
            "status": self.status.value if self.status else None,
            "teamId": self.team_id,
            "certifications": list(self.certifications) if self.certifications is not None else None,
        }
        if include_password:
            d["password"] = self.password
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "User":
        return cls(
            id=int(d["id"]),
            username=d["username"],
            role=UserRole(d["role"]),
            password=d.get("password") or "",
            status=EmtStatus(d["status"]) if d.get("status") else None,
            team_id=d.get("teamId"),
            certifications=d.get("certifications"),
        )


@dataclass
class EmergencyCall:
    id: int
    caller_name: str
    phone: str
    location: str
    description: str
    priority: int
    timestamp: datetime
    status: CallStatus = CallStatus.PENDING
    landmark: str = ""
    assigned_team_id: Optional[int] = None
    pcr_id: Optional[int] = None
    dispatch_timestamp: Optional[datetime] = None
    on_scene_timestamp: Optional[datetime] = None
    completed_timestamp: Optional[datetime] = None
    is_synced: bool = True
    notes: List[str] = field(default_factory=list)
    pin: Optional[dict] = None

    @property
    def is_open(self) -> bool:
        return self.status not in CLOSED_CALL_STATUSES

    @property
    def has_full_timeline(self) -> bool:
        """Completed with every lifecycle stamp present (usable for SLA math)."""
        return (
            self.status == CallStatus.COMPLETED
            and self.dispatch_timestamp is not None
            and self.on_scene_timestamp is not None
            and self.completed_timestamp is not None
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "callerName": self.caller_name,
            "phone": self.phone,
            "location": self.location,
            "landmark": self.landmark,
            "description": self.description,
            "priority": self.priority,
            "timestamp": format_ts(self.timestamp),
            "status": self.status.value,
            "assignedTeamId": self.assigned_team_id,
            "pcrId": self.pcr_id,
            "dispatchTimestamp": format_ts(self.dispatch_timestamp),
            "onSceneTimestamp": format_ts(self.on_scene_timestamp),
            "completedTimestamp": format_ts(self.completed_timestamp),
            "isSynced": self.is_synced,
            "notes": list(self.notes),
            "pin": self.pin,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "EmergencyCall":
        return cls(
            id=int(d["id"]),
            caller_name=d.get("callerName", ""),
            phone=d.get("phone", ""),
            location=d.get("location", ""),
            landmark=d.get("landmark") or "",
            description=d.get("description", ""),
            priority=int(d.get("priority", 3)),
            timestamp=parse_ts(d["timestamp"]),
            status=CallStatus(d.get("status", CallStatus.PENDING.value)),
            assigned_team_id=d.get("assignedTeamId"),
            pcr_id=d.get("pcrId"),
            dispatch_timestamp=parse_ts(d.get("dispatchTimestamp")),
            on_scene_timestamp=parse_ts(d.get("onSceneTimestamp")),
            completed_timestamp=parse_ts(d.get("completedTimestamp")),
            # Blobs written before the offline feature carry no flag
            is_synced=d.get("isSynced") is not False,
            notes=list(d.get("notes") or []),
            pin=d.get("pin"),
        )


@dataclass
class Team:
    id: int
    name: str
    grade: TeamGrade
    base_station: str
    status: TeamStatus = TeamStatus.AVAILABLE
    assigned_call_id: Optional[int] = None

    def to_dict(self, members: Optional[List[User]] = None) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "grade": self.grade.value,
            "baseStation": self.base_station,
            "status": self.status.value,
            "assignedCallId": self.assigned_call_id,
        }
        if members is not None:
            d["members"] = [m.to_dict() for m in members]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Team":
        return cls(
            id=int(d["id"]),
            name=d["name"],
            grade=TeamGrade(d["grade"]),
            base_station=d["baseStation"],
            status=TeamStatus(d.get("status", TeamStatus.AVAILABLE.value)),
            assigned_call_id=d.get("assignedCallId"),
        )


@dataclass
class PatientCareRecord:
    id: int
    call_id: int
    patient_vitals: str
    treatments_administered: str
    medications: str
    transfer_destination: str
    notes: str = ""
    is_synced: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "callId": self.call_id,
            "patientVitals": self.patient_vitals,
            "treatmentsAdministered": self.treatments_administered,
            "medications": self.medications,
            "transferDestination": self.transfer_destination,
            "notes": self.notes,
            "isSynced": self.is_synced,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "PatientCareRecord":
        return cls(
            id=int(d["id"]),
            call_id=int(d["callId"]),
            patient_vitals=d.get("patientVitals", ""),
            treatments_administered=d.get("treatmentsAdministered", ""),
            medications=d.get("medications", ""),
            transfer_destination=d.get("transferDestination", ""),
            notes=d.get("notes") or "",
            is_synced=d.get("isSynced") is not False,
        )


@dataclass
class DaySchedule:
    """One weekday with its day and night shift team slots (None = unassigned)."""

    day: str
    day_shift: Optional[int] = None
    night_shift: Optional[int] = None

    def team_for(self, shift: str) -> Optional[int]:
        return self.day_shift if shift == "dayShift" else self.night_shift

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "shifts": {
                "dayShift": {"teamId": self.day_shift},
                "nightShift": {"teamId": self.night_shift},
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DaySchedule":
        shifts = d.get("shifts") or {}
        day_team = (shifts.get("dayShift") or {}).get("teamId")
        night_team = (shifts.get("nightShift") or {}).get("teamId")
        return cls(
            day=d["day"],
            day_shift=int(day_team) if day_team not in (None, "") else None,
            night_shift=int(night_team) if night_team not in (None, "") else None,
        )


@dataclass
class AuditLogEntry:
    id: int
    timestamp: datetime
    user: str
    action: str
    details: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": format_ts(self.timestamp),
            "user": self.user,
            "action": self.action,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AuditLogEntry":
        return cls(
            id=int(d["id"]),
            timestamp=parse_ts(d["timestamp"]),
            user=d.get("user", "System"),
            action=d["action"],
            details=d.get("details"),
        )
