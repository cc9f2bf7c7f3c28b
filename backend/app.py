"""
PulsePoint ERIS backend: Flask JSON API behind the role dashboards
(Dispatcher, EMT, Supervisor, COO, Admin).

  /api/auth      login / signup / logout, session holds the user for audit attribution
  /api/calls     dispatcher console: log, duplicate linking, status lifecycle, team assignment
  /api/teams     ambulance teams and rosters
  /api/users     personnel, shift status requests, clock-in/out review, EMT dashboard
  /api/pcrs      patient care records
  /api/schedule  weekly shift schedule
  /api/reports   SLA / performance / exceptions / end-of-day, CSV exports
  /api/admin     audit log, backup, simulated connectivity
  /api/events    Server-Sent Events pushed by every store mutation
"""

import json
import logging
import os
import queue

from flask import Flask, Response, jsonify

from flask_cors import CORS

from config import SECRET_KEY
from events import subscribe, unsubscribe
from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.calls import calls_bp
from routes.pcrs import pcrs_bp
from routes.reports import reports_bp
from routes.schedule import schedule_bp
from routes.teams import teams_bp
from routes.users import users_bp
from services.store import ConflictError, NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = SECRET_KEY
CORS(app, supports_credentials=True)

# Register blueprints
for bp in (auth_bp, calls_bp, teams_bp, users_bp, pcrs_bp, schedule_bp, reports_bp, admin_bp):
    app.register_blueprint(bp)


# ═══════════════════════════════════════════════════════════════════════════════
# Error handlers: store rule violations map to 400/404/409, anything else is a JSON 500
# ═══════════════════════════════════════════════════════════════════════════════

STATUS_FOR_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
)


@app.errorhandler(StoreError)
def handle_store_error(e):
    status = next((code for cls, code in STATUS_FOR_ERROR if isinstance(e, cls)), 400)
    return jsonify({"error": e.message, **e.payload}), status


@app.errorhandler(Exception)
def handle_any_error(e):
    """Last-resort safety net. HTTP errors (404, 405, ...) keep their code; the rest is a logged 500."""
    code = getattr(e, "code", None)
    if isinstance(code, int) and 400 <= code < 500:
        return jsonify({"error": getattr(e, "description", str(e))}), code
    logger.exception("[GLOBAL ERROR] %s: %s", type(e).__name__, e)
    return jsonify({"error": "Internal server error", "detail": str(e)}), 500


@app.route("/api/events")
def events():
    """Server-Sent Events: call/team/user/PCR/schedule changes and sync notices."""
    def gen():
        q = subscribe()
        try:
            while True:
                try:
                    event = q.get(timeout=30)
                    yield f"data: {json.dumps(event)}\n\n"
                except queue.Empty:
                    yield ": keepalive\n\n"
        finally:
            unsubscribe(q)

    return Response(
        gen(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@app.route("/api/health")
def health():
    return jsonify({"status": "ok", "message": "Backend connected"})


@app.route("/api")
def index():
    return jsonify({"message": "PulsePoint ERIS API"})


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    debug = os.environ.get("FLASK_DEBUG", "0").lower() in ("1", "true", "yes")
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    print("=" * 60)
    if debug:
        print(f"  [Dev] PulsePoint ERIS backend starting on http://localhost:{port}")
    else:
        print(f"  PulsePoint ERIS backend starting on http://0.0.0.0:{port}")
    print("=" * 60)

    app.run(
        host="0.0.0.0",
        port=port,
        debug=debug,
        use_reloader=debug,
    )
