"""
Centralized MongoDB persistence.
Each entity collection is stored as one flat JSON blob under its storage key,
e.g. {"_id": "pulsepoint_eris_calls", "blob": "[{...}, ...]"}.
"""
import json
import logging

from pymongo import MongoClient

from config import MONGODB_DB, MONGODB_URI
from models import AuditLogEntry, DaySchedule, EmergencyCall, PatientCareRecord, Team, User

logger = logging.getLogger(__name__)

USERS_STORAGE_KEY = "pulsepoint_eris_users"
CALLS_STORAGE_KEY = "pulsepoint_eris_calls"
TEAMS_STORAGE_KEY = "pulsepoint_eris_teams"
PCRS_STORAGE_KEY = "pulsepoint_eris_pcrs"
SCHEDULE_STORAGE_KEY = "pulsepoint_eris_schedule"
AUDIT_LOG_STORAGE_KEY = "pulsepoint_eris_audit_log"

# state attribute -> (storage key, entity type)
STORAGE_KEYS = {
    "users": (USERS_STORAGE_KEY, User),
    "calls": (CALLS_STORAGE_KEY, EmergencyCall),
    "teams": (TEAMS_STORAGE_KEY, Team),
    "pcrs": (PCRS_STORAGE_KEY, PatientCareRecord),
    "schedule": (SCHEDULE_STORAGE_KEY, DaySchedule),
    "audit_log": (AUDIT_LOG_STORAGE_KEY, AuditLogEntry),
}

_client = None


def _get_client():
    """Return the shared MongoClient; created on first use."""
    global _client
    if _client is None:
        _client = MongoClient(MONGODB_URI)
    return _client


def serialize_entity(entity) -> dict:
    """Persisted form of an entity (users keep their password here, unlike API responses)."""
    if isinstance(entity, User):
        return entity.to_dict(include_password=True)
    return entity.to_dict()


class MongoStatePersistence:
    """Reads and writes the ERIS state blobs in a MongoDB collection."""

    def __init__(self, collection=None):
        if collection is None:
            collection = _get_client()[MONGODB_DB]["state"]
        self.collection = collection

    def load_state(self):
        """
        Return a dict of entity lists keyed like STORAGE_KEYS.
        Collections with no stored blob are left out so the caller can fill
        them from seed data. Raises ValueError/KeyError/TypeError on a corrupt blob.
        """
        state = {}
        for name, (key, entity_type) in STORAGE_KEYS.items():
            doc = self.collection.find_one({"_id": key})
            if not doc or doc.get("blob") is None:
                continue
            raw = json.loads(doc["blob"])
            state[name] = [entity_type.from_dict(item) for item in raw]
        return state

    def save(self, name: str, entities: list) -> None:
        key, _ = STORAGE_KEYS[name]
        blob = json.dumps([serialize_entity(e) for e in entities])
        self.collection.replace_one({"_id": key}, {"_id": key, "blob": blob}, upsert=True)

    def save_state(self, state: dict) -> None:
        for name in STORAGE_KEYS:
            self.save(name, state[name])
