"""
Weekly shift schedule: read, dry-run validation, publish.
"""

from flask import Blueprint, jsonify

from routes.helpers import current_actor, json_body
from services.store import get_store

schedule_bp = Blueprint("schedule", __name__, url_prefix="/api/schedule")


@schedule_bp.route("", methods=["GET"])
def get_schedule():
    return jsonify([d.to_dict() for d in get_store().schedule])


@schedule_bp.route("/validate", methods=["POST"])
def validate():
    """Body: {"schedule": [...7 days...]}. Returns conflicts without saving."""
    conflicts = get_store().check_schedule(json_body().get("schedule"))
    return jsonify({"conflicts": [c.to_dict() for c in conflicts]})


@schedule_bp.route("", methods=["PUT"])
def publish():
    """
    Body: {"schedule": [...], "allowUnassigned": false}.
    409 with conflicts, or with {"unassigned": true} when slots are empty and not confirmed.
    """
    data = json_body()
    schedule = get_store().update_schedule(
        data.get("schedule"), allow_unassigned=bool(data.get("allowUnassigned")), actor=current_actor()
    )
    return jsonify([d.to_dict() for d in schedule])
