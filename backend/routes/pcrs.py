"""
Patient care record routes: filing (EMT), review search and viewing (supervisor),
plus the AI narrative helper for the PCR form.
"""

import logging

from flask import Blueprint, jsonify, request

from routes.helpers import current_actor, int_arg, int_field, json_body
from services import ai, analytics
from services.store import get_store

logger = logging.getLogger(__name__)

pcrs_bp = Blueprint("pcrs", __name__, url_prefix="/api/pcrs")


@pcrs_bp.route("", methods=["GET"])
def get_pcrs():
    """
    Record review search.
    Query params: search, start, end (YYYY-MM-DD, end inclusive), priority, emt.
    """
    store = get_store()
    try:
        pcrs = analytics.filter_pcrs(
            store.pcrs,
            store.calls,
            store.users,
            term=request.args.get("search", ""),
            start=request.args.get("start") or None,
            end=request.args.get("end") or None,
            priority=int_arg("priority"),
            emt=request.args.get("emt", ""),
        )
    except ValueError as e:
        return jsonify({"error": f"invalid date: {e}"}), 400
    return jsonify([p.to_dict() for p in pcrs])


@pcrs_bp.route("", methods=["POST"])
def file_pcr():
    """
    Request body (JSON):
        - callId (required)
        - patientVitals, treatmentsAdministered, transferDestination (required)
        - medications, notes (optional)
    """
    data = json_body()
    pcr = get_store().file_pcr(int_field(data, "callId"), data, actor=current_actor())
    return jsonify(pcr.to_dict()), 201


@pcrs_bp.route("/<int:pcr_id>", methods=["GET"])
def view_pcr(pcr_id: int):
    """Opening a PCR is audited."""
    store = get_store()
    pcr = store.view_pcr(pcr_id, actor=current_actor())
    call = next((c for c in store.calls if c.id == pcr.call_id), None)
    return jsonify({"pcr": pcr.to_dict(), "call": call.to_dict() if call else None})


@pcrs_bp.route("/narrative", methods=["POST"])
def narrative():
    """Body: the PCR form fields plus callId (optional, adds the incident description)."""
    store = get_store()
    data = json_body()
    call_id = int_field(data, "callId", required=False)
    description = store.get_call(call_id).description if call_id is not None else ""
    try:
        return jsonify({"text": ai.generate_pcr_narrative(data, description)})
    except Exception as e:
        logger.error("[AI] PCR narrative failed: %s", e)
        return jsonify({"text": "Error: Could not generate narrative."})
