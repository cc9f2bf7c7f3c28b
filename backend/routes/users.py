"""
Personnel routes: roster search, profile edits, shift status requests and the
supervisor's clock-in/out review queue. Also serves the EMT dashboard payload.
"""

from flask import Blueprint, jsonify, request

from routes.helpers import current_actor, int_field, json_body
from services import analytics
from services.store import get_store

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("", methods=["GET"])
def get_users():
    """?search= narrows to EMTs whose username matches."""
    store = get_store()
    if "search" in request.args:
        users = analytics.search_personnel(store.users, request.args["search"])
    else:
        users = store.users
    return jsonify([u.to_dict() for u in users])


@users_bp.route("/pending", methods=["GET"])
def pending_requests():
    return jsonify([u.to_dict() for u in analytics.pending_clock_requests(get_store().users)])


@users_bp.route("/unassigned", methods=["GET"])
def unassigned():
    return jsonify([u.to_dict() for u in analytics.unassigned_emts(get_store().users)])


@users_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id: int):
    return jsonify(get_store().get_user(user_id).to_dict())


@users_bp.route("/<int:user_id>", methods=["PUT"])
def update_user(user_id: int):
    """Body: {"certifications": "EMT-P, ACLS"} or a list of strings."""
    user = get_store().update_user(user_id, json_body(), actor=current_actor())
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/status", methods=["POST"])
def request_status(user_id: int):
    user = get_store().update_user_status(user_id, json_body().get("status"), actor=current_actor())
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/clock-review", methods=["POST"])
def clock_review(user_id: int):
    """Body: {"approved": true|false}."""
    data = json_body()
    user = get_store().approve_clock_in_out(user_id, bool(data.get("approved")), actor=current_actor())
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/team", methods=["POST"])
def assign_to_team(user_id: int):
    data = json_body()
    user = get_store().assign_user_to_team(user_id, int_field(data, "teamId"), actor=current_actor())
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>/dashboard", methods=["GET"])
def emt_dashboard(user_id: int):
    """Team, current assignment, today's completed calls and unsynced PCR count for one EMT."""
    store = get_store()
    user = store.get_user(user_id)
    overview = analytics.emt_overview(user, store.calls, store.teams, store.pcrs, store.clock())
    team = overview["team"]
    call = overview["assignedCall"]
    return jsonify({
        "user": user.to_dict(),
        "team": store.team_dict(team) if team else None,
        "assignedCall": call.to_dict() if call else None,
        "completedToday": [c.to_dict() for c in overview["completedToday"]],
        "completedByPriority": overview["completedByPriority"],
        "unsyncedPcrCount": overview["unsyncedPcrCount"],
        "isOnline": store.is_online,
    })
