"""
Field schema service: persistence for FieldDefinition rows.

These rows are the live schema the workflow engine reads through
``DatabaseSchemaAccessor``. Editing them is what produces schema drift
against saved processes. All db.session.commit() calls for field
definitions live in this module.
"""

import logging

from dealflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from dealflow.models import db
from dealflow.models.field_definition import FIELD_TYPES, FieldDefinition

logger = logging.getLogger(__name__)


# Default deal columns seeded for a new organization.
_STAGE_OPTIONS = [
    {"value": "prospecting", "label": "Prospecting", "color": "#64748b"},
    {"value": "qualification", "label": "Qualification", "color": "#3b82f6"},
    {"value": "proposal", "label": "Proposal", "color": "#8b5cf6"},
    {"value": "negotiation", "label": "Negotiation", "color": "#f59e0b"},
    {"value": "closing", "label": "Closing", "color": "#10b981"},
    {"value": "won", "label": "Won", "color": "#22c55e"},
    {"value": "lost", "label": "Lost", "color": "#ef4444"},
]

_ORIGIN_OPTIONS = [
    {"value": "inbound", "label": "Inbound", "color": "#3b82f6"},
    {"value": "outbound", "label": "Outbound", "color": "#8b5cf6"},
    {"value": "referral", "label": "Referral", "color": "#10b981"},
    {"value": "partner", "label": "Partner", "color": "#f59e0b"},
    {"value": "event", "label": "Event", "color": "#ec4899"},
    {"value": "marketing", "label": "Marketing", "color": "#06b6d4"},
]

_PRODUCT_OPTIONS = [
    {"value": "VAR", "label": "VAR", "color": "#3b82f6"},
    {"value": "COM", "label": "COM", "color": "#8b5cf6"},
    {"value": "AMS", "label": "AMS", "color": "#10b981"},
]

DEFAULT_DEAL_FIELDS = [
    {"field_key": "name", "field_label": "Deal Name", "field_type": "text"},
    {"field_key": "companyId", "field_label": "Company", "field_type": "relation"},
    {"field_key": "product", "field_label": "Product", "field_type": "select", "options": _PRODUCT_OPTIONS},
    {"field_key": "origin", "field_label": "Origin", "field_type": "select", "options": _ORIGIN_OPTIONS},
    {"field_key": "stage", "field_label": "Stage", "field_type": "select", "options": _STAGE_OPTIONS},
    {"field_key": "ownerId", "field_label": "Owner", "field_type": "relation"},
    {"field_key": "value", "field_label": "Value", "field_type": "currency"},
    {"field_key": "createdAt", "field_label": "Created At", "field_type": "date", "is_editable": False},
    {"field_key": "expectedCloseDate", "field_label": "Expected Close Date", "field_type": "date"},
    {"field_key": "contactId", "field_label": "Contact", "field_type": "relation"},
    {"field_key": "notes", "field_label": "Notes", "field_type": "text"},
]


def _validate_field_type(field_type) -> str:
    if field_type not in FIELD_TYPES:
        raise ValidationError(
            f"field_type must be one of: {', '.join(sorted(FIELD_TYPES))}",
            details={"field_type": field_type},
        )
    return field_type


def _validate_options(options) -> list[dict]:
    if options is None:
        return []
    if not isinstance(options, list):
        raise ValidationError("options must be a list", details={"options": "not a list"})
    values = set()
    for opt in options:
        if not isinstance(opt, dict) or not opt.get("value"):
            raise ValidationError("each option needs a value", details={"options": repr(opt)})
        if opt["value"] in values:
            raise ValidationError(
                f"duplicate option value {opt['value']!r}",
                details={"options": opt["value"]},
            )
        values.add(opt["value"])
    return options


def list_field_definitions(organization_id: str, entity_type: str = "deals") -> list[dict]:
    """Return an organization's fields for one entity type, in display order.

    Args:
        organization_id: Owning organization.
        entity_type: Entity schema to read (e.g. "deals").

    Returns:
        List of FieldDefinition.to_dict() results.
    """
    q = (
        FieldDefinition.query
        .filter_by(organization_id=organization_id, entity_type=entity_type)
        .order_by(FieldDefinition.sort_order, FieldDefinition.id)
    )
    return [f.to_dict() for f in q.all()]


def create_field_definition(organization_id: str, data: dict) -> dict:
    """Persist a new field, enforcing key uniqueness within org + entity_type.

    Raises:
        ValidationError: On unknown field_type or malformed options.
        ConflictError: If field_key already exists for the org/entity.
    """
    entity_type = data.get("entity_type", "deals")
    field_key = data["field_key"]
    field_type = _validate_field_type(data.get("field_type", "text"))

    duplicate = FieldDefinition.query.filter_by(
        organization_id=organization_id,
        entity_type=entity_type,
        field_key=field_key,
    ).first()
    if duplicate:
        raise ConflictError("FieldDefinition", "field_key", field_key)

    field = FieldDefinition(
        organization_id=organization_id,
        entity_type=entity_type,
        field_key=field_key,
        field_label=data.get("field_label", field_key),
        field_type=field_type,
        options=_validate_options(data.get("options")),
        is_editable=data.get("is_editable", True),
        sort_order=data.get("sort_order", 0),
    )
    db.session.add(field)
    db.session.commit()
    logger.info("FieldDefinition created id=%s org=%s key=%s", field.id, organization_id, field_key)
    return field.to_dict()


def _get_scoped(organization_id: str, fid: int) -> FieldDefinition:
    field = db.session.get(FieldDefinition, fid)
    if not field or field.organization_id != organization_id:
        raise NotFoundError("FieldDefinition", fid, organization_id)
    return field


def update_field_definition(organization_id: str, fid: int, data: dict) -> dict:
    """Apply a partial update; changing ``options`` is how drift happens.

    Raises:
        NotFoundError: If the field does not exist in this organization.
        ValidationError: On unknown field_type or malformed options.
    """
    field = _get_scoped(organization_id, fid)

    if "field_type" in data:
        _validate_field_type(data["field_type"])
    if "options" in data:
        data = {**data, "options": _validate_options(data["options"])}
    for attr in ("field_label", "field_type", "options", "is_editable", "sort_order"):
        if attr in data:
            setattr(field, attr, data[attr])

    db.session.commit()
    logger.info("FieldDefinition updated id=%s", fid)
    return field.to_dict()


def delete_field_definition(organization_id: str, fid: int) -> None:
    """Delete a field. Processes that reference it are left untouched."""
    field = _get_scoped(organization_id, fid)
    db.session.delete(field)
    db.session.commit()
    logger.info("FieldDefinition deleted id=%s", fid)


def seed_default_schema(organization_id: str, entity_type: str = "deals") -> int:
    """Create the default deal columns that are not present yet.

    Returns:
        Number of fields created.
    """
    existing = {
        f.field_key
        for f in FieldDefinition.query.filter_by(
            organization_id=organization_id, entity_type=entity_type
        ).all()
    }
    created = 0
    for order, column in enumerate(DEFAULT_DEAL_FIELDS):
        if column["field_key"] in existing:
            continue
        db.session.add(FieldDefinition(
            organization_id=organization_id,
            entity_type=entity_type,
            field_key=column["field_key"],
            field_label=column["field_label"],
            field_type=column["field_type"],
            options=column.get("options", []),
            is_editable=column.get("is_editable", True),
            sort_order=order,
        ))
        created += 1
    db.session.commit()
    logger.info("Seeded %s default fields org=%s entity=%s", created, organization_id, entity_type)
    return created
