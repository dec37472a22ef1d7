"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask seed-deal-schema --org <organization_id>
"""

from dealflow import create_app

app = create_app()
