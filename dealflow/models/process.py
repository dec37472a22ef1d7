"""Workflow process definitions, one row per configured process."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, String

from dealflow.models import db


def _utcnow():
    return datetime.now(timezone.utc)


def _uuid():
    return str(uuid.uuid4())


class ProcessDefinition(db.Model):
    """Saved workflow overlaid on one select field of an organization's schema.

    ``stages``, ``transitions`` and ``requirements`` hold option values of the
    governed field; those values are not guaranteed to still exist in the
    live schema.
    """

    __tablename__ = "processes"

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    select_field_key = Column(String(100), nullable=False)
    stages = Column(JSON, default=list)  # ["prospecting", "proposal", ...]
    transitions = Column(JSON, default=list)  # [{"from": "a", "to": "b"}, ...]
    requirements = Column(JSON, default=dict)  # {"proposal": ["value", ...]}
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_processes_org_field", "organization_id", "select_field_key"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "enabled": self.enabled,
            "select_field_key": self.select_field_key,
            "stages": self.stages or [],
            "transitions": self.transitions or [],
            "requirements": self.requirements or {},
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
