"""
Shared pytest fixtures for the dealflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org_id / headers: Organization scope for API calls
    - deal_schema: Default deal columns seeded for org_id
    - stage_schema: In-memory schema for engine-only tests
"""

import pytest

from dealflow import create_app
from dealflow.models import db as _db
from dealflow.services.schema_accessor import StaticSchemaAccessor
from dealflow.services.workflow_types import FieldInfo, SelectOption

ORG_ID = "org-test"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def org_id():
    return ORG_ID


@pytest.fixture()
def headers(org_id):
    return {"X-Organization-Id": org_id}


@pytest.fixture()
def deal_schema(org_id):
    """Seed the default deal columns (stage, origin, product, ...)."""
    from dealflow.services.field_schema_service import seed_default_schema
    seed_default_schema(org_id)
    return org_id


@pytest.fixture()
def stage_schema():
    """Small fixed schema: one select field plus a few plain columns."""
    return StaticSchemaAccessor([
        FieldInfo("name", "Deal Name"),
        FieldInfo(
            "stage", "Stage", field_type="select",
            options=(
                SelectOption("prospecting", "Prospecting"),
                SelectOption("proposal", "Proposal"),
                SelectOption("closing", "Closing"),
            ),
        ),
        FieldInfo("value", "Value", field_type="currency"),
        FieldInfo("ownerId", "Owner", field_type="relation"),
        FieldInfo("createdAt", "Created At", field_type="date", editable=False),
        FieldInfo("id", "Id", editable=False),
    ])
