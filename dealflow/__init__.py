"""
dealflow
Flask Application Factory.

Usage:
    from dealflow import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate

from dealflow.config import config
from dealflow.middleware.logging_config import configure_logging
from dealflow.middleware.timing import init_request_timing
from dealflow.models import db
from dealflow.utils.errors import E, api_error, error_for

logger = logging.getLogger(__name__)

migrate = Migrate()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    # "*" = any origin, "" = no CORS headers, else a comma-separated allow-list
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins == "*":
        CORS(app)
    elif cors_origins:
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        from flask import abort, request as _req
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and _req.content_length and _req.content_length > max_len:
            abort(413, description="Request body too large")
        if _req.method in ("POST", "PUT", "PATCH") and _req.path.startswith("/api/"):
            ct = _req.content_type or ""
            if _req.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from dealflow.models import field_definition as _field_definition_models  # noqa: F401
    from dealflow.models import process as _process_models                    # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from dealflow.blueprints.health_bp import health_bp
    from dealflow.blueprints.process_bp import process_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(process_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-deal-schema")
    @click.option("--org", "organization_id", required=True, help="Organization id to seed.")
    def seed_deal_schema_cmd(organization_id):
        """Seed the default deal columns (stage, origin, product, ...)."""
        from dealflow.services.field_schema_service import seed_default_schema
        count = seed_default_schema(organization_id, app.config["DEFAULT_ENTITY_TYPE"])
        logger.info("Seeded %s deal fields for org=%s.", count, organization_id)

    # ── Error handlers (same envelope as the blueprints) ────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    @app.errorhandler(413)
    @app.errorhandler(415)
    def http_error(e):
        return error_for(e)

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    return app
