"""
Call-related API routes: the dispatcher console.
"""

import logging

from flask import Blueprint, jsonify, request

from routes.helpers import current_actor, int_arg, int_field, json_body
from services import ai, analytics
from services.store import get_store

logger = logging.getLogger(__name__)

calls_bp = Blueprint("calls", __name__, url_prefix="/api/calls")


@calls_bp.route("", methods=["GET"])
def get_calls():
    """
    List calls.
    Query params:
        - view: "pending" (dispatch queue), "active" (crews working), "open" (not closed) or omitted for all
        - search, priority: pending view only
    """
    store = get_store()
    view = request.args.get("view", "")
    if view == "pending":
        calls = analytics.pending_calls(store.calls, request.args.get("search", ""), int_arg("priority"))
    elif view == "active":
        calls = analytics.active_calls(store.calls)
    elif view == "open":
        calls = analytics.open_incidents(store.calls)
    elif view == "":
        calls = store.calls
    else:
        return jsonify({"error": f"unknown view: {view}"}), 400
    return jsonify([c.to_dict() for c in calls])


@calls_bp.route("", methods=["POST"])
def create_call():
    """
    Log a new emergency call.

    Request body (JSON):
        - callerName, phone, location, description (required)
        - landmark (optional), priority (1-4, default 3)
        - force (optional): create even if duplicates were found

    Returns 201 with the call, or 409 with the duplicate candidates so the
    dispatcher can link the report (POST /<id>/link) or resubmit with force.
    """
    store = get_store()
    data = json_body()
    actor = current_actor()

    if data.get("force"):
        call = store.create_call_anyway(data, actor=actor)
        return jsonify({"outcome": "logged", "call": call.to_dict()}), 201

    result = store.log_call(data, actor=actor)
    if result.outcome == "duplicate":
        return jsonify({
            "error": "Potential duplicate call",
            "duplicates": [c.to_dict() for c in result.duplicates],
        }), 409
    return jsonify({"outcome": result.outcome, "message": result.message, "call": result.call.to_dict()}), 201


@calls_bp.route("/<int:call_id>", methods=["GET"])
def get_call(call_id: int):
    """Fetch a single call by ID."""
    return jsonify(get_store().get_call(call_id).to_dict())


@calls_bp.route("/<int:call_id>/link", methods=["POST"])
def link_call(call_id: int):
    """Attach a repeat report (same body as POST /api/calls) to an existing incident."""
    call = get_store().link_call(call_id, json_body(), actor=current_actor())
    return jsonify(call.to_dict())


@calls_bp.route("/<int:call_id>/status", methods=["POST"])
def update_status(call_id: int):
    """Body: {"status": "On Scene", "teamId": optional}."""
    data = json_body()
    call = get_store().update_call_status(
        call_id,
        data.get("status"),
        team_id=int_field(data, "teamId", required=False),
        actor=current_actor(),
    )
    return jsonify(call.to_dict())


@calls_bp.route("/<int:call_id>/assign", methods=["POST"])
def assign_team(call_id: int):
    data = json_body()
    call = get_store().assign_team(call_id, int_field(data, "teamId"), actor=current_actor())
    return jsonify(call.to_dict())


@calls_bp.route("/suggest-priority", methods=["POST"])
def suggest_priority():
    """Body: {"description": "..."}. Returns {"priority": 1-4 or null}."""
    description = json_body().get("description", "")
    try:
        return jsonify({"priority": ai.suggest_priority(description)})
    except Exception as e:
        logger.error("[AI] Priority suggestion failed: %s", e)
        return jsonify({"priority": None, "error": "Error: Could not suggest a priority."})


@calls_bp.route("/verify-location", methods=["POST"])
def verify_location():
    """Body: {"location": "..."}. Returns an access briefing for the crew."""
    location = json_body().get("location", "")
    if not isinstance(location, str) or not location.strip():
        return jsonify({"error": "location is required"}), 400
    try:
        return jsonify({"text": ai.location_briefing(location)})
    except Exception as e:
        logger.error("[AI] Location briefing failed: %s", e)
        return jsonify({"text": "Error: Could not verify location."})
