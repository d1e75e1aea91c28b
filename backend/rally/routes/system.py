# backend/rally/routes/system.py
"""
System health endpoint.

Reports database reachability and the realtime publisher configuration for
deployment debugging.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import PointAward, Team, User
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        team_count = db.session.query(Team).count()
        user_count = db.session.query(User).count()
        live_awards = db.session.query(PointAward).filter(PointAward.voided_at.is_(None)).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "teams": team_count,
                "users": user_count,
                "live_awards": live_awards,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database,
            "realtime": {
                "publish_enabled": bool(current_app.config.get("LEADERBOARD_PUBLISH_ENABLED", True)),
                "room": current_app.config.get("LEADERBOARD_ROOM", "leaderboard"),
            },
        },
    }), 200 if healthy else 503
