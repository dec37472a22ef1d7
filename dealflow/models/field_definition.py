"""Record schema columns (the live option lists read by the engine)."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)

from dealflow.models import db

FIELD_TYPES = frozenset({
    "text", "number", "currency", "select", "multi-select",
    "date", "boolean", "relation",
})


def _utcnow():
    return datetime.now(timezone.utc)


class FieldDefinition(db.Model):
    """One column of an entity schema within an organization."""

    __tablename__ = "field_definitions"

    id = Column(Integer, primary_key=True)
    organization_id = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(30), default="deals")  # deals | companies | contacts
    field_key = Column(String(100), nullable=False)
    field_label = Column(String(200), default="")
    field_type = Column(String(30), default="text")
    options = Column(JSON, default=list)  # For select: [{"value":"v","label":"l","color":"#hex"},...]
    is_editable = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "entity_type", "field_key",
            name="uq_field_definitions_org_entity_key",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "entity_type": self.entity_type,
            "field_key": self.field_key,
            "field_label": self.field_label,
            "field_type": self.field_type,
            "options": self.options or [],
            "is_editable": self.is_editable,
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
