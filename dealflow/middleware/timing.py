"""
Request id + timing hooks.

Every response carries ``X-Request-ID`` (the caller's id when it sent a usable
one, otherwise a fresh one) and ``X-Request-Duration-Ms``. Requests slower than
``SLOW_REQUEST_MS`` are logged at WARNING, 5xx responses at ERROR, everything
else at DEBUG. Health probes are never logged.
"""

import logging
import re
import time
import uuid

from flask import Flask, current_app, g, request

logger = logging.getLogger(__name__)

_SKIP_LOG = frozenset({"/api/v1/health/ready", "/api/v1/health/live"})

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _incoming_request_id() -> str:
    candidate = request.headers.get("X-Request-ID", "")
    return candidate if _REQUEST_ID_RE.match(candidate) else uuid.uuid4().hex[:12]


def init_request_timing(app: Flask):
    """Register the before/after hooks on ``app``."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = _incoming_request_id()

    @app.after_request
    def _finish_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path in _SKIP_LOG:
            return response

        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
        }
        args = (request.method, request.path, response.status_code, duration_ms)
        if duration_ms > current_app.config.get("SLOW_REQUEST_MS", 1000):
            logger.warning("Slow request: %s %s %d (%.0fms)", *args, extra=extra)
        elif response.status_code >= 500:
            logger.error("Server error: %s %s %d (%.0fms)", *args, extra=extra)
        else:
            logger.debug("%s %s %d (%.0fms)", *args, extra=extra)
        return response
