"""
Login / signup / logout. The logged-in user lives in the Flask session and is
used to attribute audit entries.
"""

from flask import Blueprint, jsonify, session

from routes.helpers import current_actor, json_body
from services.store import get_store

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    user = get_store().login(data.get("username", ""), data.get("password", ""))
    if user is None:
        return jsonify({"error": "Invalid username or password"}), 401
    session["user_id"] = user.id
    session["username"] = user.username
    return jsonify(user.to_dict())


@auth_bp.route("/signup", methods=["POST"])
def signup():
    """
    Request body (JSON): username, password, role (Dispatcher, EMT, Supervisor, COO, Admin).
    Returns 409 when the username is taken.
    """
    data = json_body()
    user = get_store().signup(data.get("username", ""), data.get("password", ""), data.get("role"))
    if user is None:
        return jsonify({"error": "Username already exists."}), 409
    return jsonify(user.to_dict()), 201


@auth_bp.route("/logout", methods=["POST"])
def logout():
    get_store().logout(actor=current_actor())
    session.clear()
    return jsonify({"status": "ok"})


@auth_bp.route("/me", methods=["GET"])
def me():
    user_id = session.get("user_id")
    if user_id is None:
        return jsonify({"error": "Not logged in"}), 401
    return jsonify(get_store().get_user(user_id).to_dict())
