"""
Health probes.

    GET /api/v1/health/ready  - process is up (no I/O)
    GET /api/v1/health/live   - database round-trip plus workflow table counts;
                                503 when any check fails
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from dealflow.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

_WORKFLOW_TABLES = ("processes", "field_definitions")


def _check_database() -> dict:
    t0 = time.perf_counter()
    db.session.execute(db.text("SELECT 1"))
    return {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}


def _count_rows(table: str) -> dict:
    count = db.session.execute(db.text(f"SELECT COUNT(*) FROM {table}")).scalar()
    return {"status": "ok", "count": count}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {}
    probes = [("database", _check_database)]
    probes += [(t, lambda t=t: _count_rows(t)) for t in _WORKFLOW_TABLES]

    healthy = True
    for name, probe in probes:
        if not healthy:
            checks[name] = {"status": "skipped"}
            continue
        try:
            checks[name] = probe()
        except Exception as exc:
            db.session.rollback()
            checks[name] = {"status": "error", "detail": str(exc)}
            healthy = False
            logger.error("Health check %s failed: %s", name, exc)

    checks["app"] = {
        "name": "dealflow",
        "testing": current_app.testing,
        "process_enforcement": bool(current_app.config.get("PROCESS_ENFORCEMENT_ENABLED", True)),
    }
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
