"""
Reporting routes for the supervisor and COO dashboards: SLA, team
performance, open-incident exceptions, end-of-day and demand views, with CSV
downloads and the AI write-ups (handover summary, EOD insights).
"""

import logging

from flask import Blueprint, jsonify, request

from config import SLA_MINUTES
from routes.helpers import csv_response, current_actor
from services import ai, analytics, reports
from services.store import ValidationError, get_store

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _sla_filters():
    date_filter = request.args.get("date", "30d")
    station = request.args.get("station", "all")
    if date_filter not in analytics.DATE_FILTER_DAYS:
        raise ValidationError(f"date must be one of: {', '.join(analytics.DATE_FILTER_DAYS)}")
    return date_filter, station


def _sla_data():
    store = get_store()
    date_filter, station = _sla_filters()
    calls = analytics.sla_calls(store.calls, store.teams, date_filter, station, store.clock())
    return calls, date_filter, station


@reports_bp.route("/sla", methods=["GET"])
def sla():
    """?date=7d|30d|all&station=all|North|South|East|West"""
    calls, date_filter, station = _sla_data()
    return jsonify({
        "dateFilter": date_filter,
        "station": station,
        "slaMinutes": SLA_MINUTES,
        "stats": analytics.sla_stats(calls, SLA_MINUTES),
        "byPriority": analytics.sla_by_priority(calls, SLA_MINUTES),
    })


@reports_bp.route("/sla.csv", methods=["GET"])
def sla_csv():
    store = get_store()
    calls, date_filter, station = _sla_data()
    body = reports.sla_csv(calls, date_filter, station, SLA_MINUTES, store.clock())
    store.log_audit_event("SLA Data Exported", f"Filters: date={date_filter}, station={station}. Records: {len(calls)}", user=current_actor())
    return csv_response(body, "sla_report")


@reports_bp.route("/performance", methods=["GET"])
def performance():
    store = get_store()
    return jsonify(analytics.team_performance(store.calls, store.teams))


@reports_bp.route("/performance.csv", methods=["GET"])
def performance_csv():
    store = get_store()
    return csv_response(reports.performance_csv(analytics.team_performance(store.calls, store.teams)), "team_performance")


@reports_bp.route("/exceptions", methods=["GET"])
def exceptions():
    """Open incidents with their age, oldest first."""
    store = get_store()
    now = store.clock()
    team_names = {t.id: t.name for t in store.teams}
    open_calls = sorted(analytics.open_incidents(store.calls), key=lambda c: c.timestamp)
    return jsonify([
        {**c.to_dict(), "age": analytics.incident_age(c.timestamp, now), "teamName": team_names.get(c.assigned_team_id)}
        for c in open_calls
    ])


@reports_bp.route("/exceptions.csv", methods=["GET"])
def exceptions_csv():
    store = get_store()
    body = reports.exceptions_csv(analytics.open_incidents(store.calls), store.teams)
    return csv_response(body, "open_incidents")


@reports_bp.route("/handover", methods=["POST"])
def handover():
    store = get_store()
    try:
        text = ai.generate_handover_summary(analytics.open_incidents(store.calls), store.teams, store.clock())
    except Exception as e:
        logger.error("[AI] Handover summary failed: %s", e)
        text = "Error: Could not generate summary."
    return jsonify({"text": text})


@reports_bp.route("/eod", methods=["GET"])
def eod():
    store = get_store()
    return jsonify(analytics.eod_stats(store.calls, store.clock()))


@reports_bp.route("/eod/insights", methods=["POST"])
def eod_insights():
    store = get_store()
    try:
        text = ai.generate_eod_insights(analytics.todays_calls(store.calls, store.clock()))
    except Exception as e:
        logger.error("[AI] EOD insights failed: %s", e)
        text = "Error: Could not generate insights."
    return jsonify({"text": text})


@reports_bp.route("/demand", methods=["GET"])
def demand():
    store = get_store()
    return jsonify(analytics.demand_by_station(store.calls, store.teams))


@reports_bp.route("/calls", methods=["GET"])
def call_breakdown():
    store = get_store()
    return jsonify({
        "byStatus": analytics.status_counts(store.calls),
        "byPriority": analytics.priority_counts(store.calls),
    })


@reports_bp.route("/supervisor", methods=["GET"])
def supervisor():
    store = get_store()
    return jsonify(analytics.supervisor_stats(store.calls, store.pcrs, store.users, store.teams, store.clock()))
