"""
Admin routes: audit log review/export, manual backup, and the simulated
connectivity switch used to exercise offline call/PCR queuing.
"""

from flask import Blueprint, jsonify, request

from routes.helpers import csv_response, current_actor, json_body
from services import analytics, reports
from services.store import ValidationError, get_store

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

AUDIT_FILTERS = ("user", "role", "action", "start", "end")


def _filtered_log():
    store = get_store()
    filters = {name: request.args.get(name, "") for name in AUDIT_FILTERS}
    try:
        entries = analytics.filter_audit_log(
            store.audit_log,
            store.users,
            user=filters["user"],
            action=filters["action"],
            role=filters["role"] or None,
            start=filters["start"] or None,
            end=filters["end"] or None,
        )
    except ValueError as e:
        raise ValidationError(f"invalid date: {e}")
    return entries, filters


@admin_bp.route("/audit-log", methods=["GET"])
def audit_log():
    """Query params: user (substring), role, action (exact), start, end (YYYY-MM-DD)."""
    entries, _ = _filtered_log()
    return jsonify({
        "entries": [e.to_dict() for e in entries],
        "actions": analytics.unique_actions(get_store().audit_log),
    })


@admin_bp.route("/audit-log.csv", methods=["GET"])
def audit_log_csv():
    store = get_store()
    entries, filters = _filtered_log()
    body = reports.audit_log_csv(entries, filters, store.clock())
    store.log_audit_event(
        "Audit Log Exported",
        f"Filters: User={filters['user'] or 'All'}, Role={filters['role'] or 'all'}, "
        f"Action={filters['action'] or 'All'}, Range={filters['start'] or 'Start'}-{filters['end'] or 'End'}. "
        f"Records: {len(entries)}",
        user=current_actor(),
    )
    return csv_response(body, "audit_log")


@admin_bp.route("/backup", methods=["POST"])
def backup():
    return jsonify(get_store().backup(actor=current_actor()))


@admin_bp.route("/connectivity", methods=["GET"])
def connectivity():
    return jsonify({"online": get_store().is_online})


@admin_bp.route("/connectivity", methods=["POST"])
def set_connectivity():
    """Body: {"online": true|false}. Going online syncs queued records after a short delay."""
    data = json_body()
    if "online" not in data:
        raise ValidationError("online required")
    store = get_store()
    store.set_online(bool(data["online"]), actor=current_actor())
    return jsonify({"online": store.is_online})


@admin_bp.route("/sync", methods=["POST"])
def sync():
    return jsonify(get_store().sync(actor=current_actor()))
