"""
Ambulance team routes. Teams are returned with their members embedded.
"""

from flask import Blueprint, jsonify, request

from routes.helpers import current_actor, json_body
from services import analytics
from services.store import get_store

teams_bp = Blueprint("teams", __name__, url_prefix="/api/teams")


@teams_bp.route("", methods=["GET"])
def get_teams():
    """Query params: grade (ALS/BLS), station, available=1 for the dispatch picker."""
    store = get_store()
    teams = analytics.filter_teams(store.teams, request.args.get("grade"), request.args.get("station"))
    if request.args.get("available") in ("1", "true"):
        teams = analytics.available_teams(teams)
    return jsonify([store.team_dict(t) for t in teams])


@teams_bp.route("/<int:team_id>", methods=["GET"])
def get_team(team_id: int):
    store = get_store()
    return jsonify(store.team_dict(store.get_team(team_id)))


@teams_bp.route("/<int:team_id>", methods=["PUT"])
def update_team(team_id: int):
    """Body: any of name, grade, baseStation, memberIds (replaces the roster)."""
    store = get_store()
    team = store.update_team(team_id, json_body(), actor=current_actor())
    return jsonify(store.team_dict(team))


@teams_bp.route("/<int:team_id>/status", methods=["POST"])
def update_team_status(team_id: int):
    store = get_store()
    team = store.update_team_status(team_id, json_body().get("status"), actor=current_actor())
    return jsonify(store.team_dict(team))
