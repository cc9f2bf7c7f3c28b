"""
Small request helpers shared by the blueprints.
"""

from flask import Response, request, session

from services.reports import report_filename
from services.store import ValidationError


def current_actor():
    """Username of the logged-in user, or None (audit entries then read "System")."""
    return session.get("username")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def int_arg(name: str, default=None):
    """Optional integer query parameter; "" and "all" mean unset."""
    raw = request.args.get(name)
    if raw in (None, "", "all"):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def int_field(data: dict, name: str, required: bool = True):
    value = data.get(name)
    if value in (None, ""):
        if required:
            raise ValidationError(f"{name} required")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def csv_response(body: str, report: str) -> Response:
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report)}"'},
    )
