"""processes & field_definitions tables

Revision ID: a1d7e2f0c901
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "a1d7e2f0c901"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "field_definitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False, index=True),
        sa.Column("entity_type", sa.String(30), server_default="deals"),
        sa.Column("field_key", sa.String(100), nullable=False),
        sa.Column("field_label", sa.String(200), server_default=""),
        sa.Column("field_type", sa.String(30), server_default="text"),
        sa.Column("options", sa.JSON()),
        sa.Column("is_editable", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("sort_order", sa.Integer(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "organization_id", "entity_type", "field_key",
            name="uq_field_definitions_org_entity_key",
        ),
    )

    op.create_table(
        "processes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("select_field_key", sa.String(100), nullable=False),
        sa.Column("stages", sa.JSON()),
        sa.Column("transitions", sa.JSON()),
        sa.Column("requirements", sa.JSON()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_processes_org_field", "processes", ["organization_id", "select_field_key"])


def downgrade():
    op.drop_index("ix_processes_org_field", table_name="processes")
    op.drop_table("processes")
    op.drop_table("field_definitions")
