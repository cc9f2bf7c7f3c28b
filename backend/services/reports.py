"""
CSV exports for the supervisor, COO and admin dashboards.
Report metadata goes in leading "# ..." comment lines, then a header row.
"""

import csv
import io
from datetime import datetime
from typing import Optional

from models import format_ts, utcnow
from services.analytics import met_sla, response_minutes

SLA_HEADER = [
    "Call ID", "Timestamp", "Dispatch Timestamp", "On-Scene Timestamp",
    "Total Response Time (sec)", "Response Time (min)", "Met SLA",
]
PERFORMANCE_HEADER = [
    "Team", "Calls Completed", "Avg Dispatch (min)", "Avg On Scene (min)", "Avg Total Response (min)",
]
EXCEPTIONS_HEADER = ["ID", "Priority", "Status", "Location", "Description", "Timestamp", "Assigned Team"]
AUDIT_HEADER = ["ID", "Timestamp", "User", "Action", "Details"]


def _writer(buf):
    return csv.writer(buf, lineterminator="\n")


def _comments(buf, lines) -> None:
    for line in lines:
        buf.write(f"# {line}\n")


def report_filename(report: str, generated_at: Optional[datetime] = None) -> str:
    return f"pulsepoint_{report}_{(generated_at or utcnow()).date().isoformat()}.csv"


def sla_csv(calls, date_filter: str, station: str, sla_minutes: int, generated_at: Optional[datetime] = None) -> str:
    generated_at = generated_at or utcnow()
    buf = io.StringIO()
    _comments(buf, [
        f"Report Generated: {format_ts(generated_at)}",
        f"Date Filter: {date_filter}",
        f"Station Filter: {station}",
    ])
    writer = _writer(buf)
    writer.writerow(SLA_HEADER)
    for call in calls:
        total_min = response_minutes(call)
        writer.writerow([
            call.id,
            format_ts(call.timestamp),
            format_ts(call.dispatch_timestamp),
            format_ts(call.on_scene_timestamp),
            f"{total_min * 60:.0f}",
            f"{total_min:.2f}",
            "Yes" if met_sla(call, sla_minutes) else "No",
        ])
    return buf.getvalue()


def performance_csv(rows) -> str:
    """Rows as produced by analytics.team_performance(); missing averages print as N/A."""
    buf = io.StringIO()
    writer = _writer(buf)
    writer.writerow(PERFORMANCE_HEADER)
    for row in rows:
        writer.writerow([
            row["teamName"],
            row["callsCompleted"],
            *(
                "N/A" if row[key] is None else f"{row[key]:.1f}"
                for key in ("avgDispatchMin", "avgOnSceneMin", "avgTotalResponseMin")
            ),
        ])
    return buf.getvalue()


def exceptions_csv(open_calls, teams) -> str:
    team_names = {t.id: t.name for t in teams}
    buf = io.StringIO()
    writer = _writer(buf)
    writer.writerow(EXCEPTIONS_HEADER)
    for call in open_calls:
        writer.writerow([
            call.id,
            call.priority,
            call.status.value,
            call.location,
            call.description,
            format_ts(call.timestamp),
            team_names.get(call.assigned_team_id, "N/A"),
        ])
    return buf.getvalue()


def audit_log_csv(entries, filters: dict, generated_at: Optional[datetime] = None) -> str:
    """
    Audit export with a filter header and an end-of-report footer.
    filters keys: user, role, action, start, end (empty means unfiltered).
    """
    stamp = format_ts(generated_at or utcnow())
    buf = io.StringIO()
    _comments(buf, [
        f"Export Generated: {stamp}",
        f"Filter User: {filters.get('user') or 'All'}",
        f"Filter Role: {filters.get('role') or 'all'}",
        f"Filter Action: {filters.get('action') or 'All'}",
        f"Date Range: {filters.get('start') or 'Start'} to {filters.get('end') or 'End'}",
    ])
    writer = _writer(buf)
    writer.writerow(AUDIT_HEADER)
    for entry in entries:
        writer.writerow([entry.id, format_ts(entry.timestamp), entry.user, entry.action, entry.details or ""])
    _comments(buf, [f"End of Report - Generated: {stamp}"])
    return buf.getvalue()
