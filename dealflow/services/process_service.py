"""
Process service: persistence of workflow definitions and the org-scoped
entry points into the reconciliation/validation engine.

Layer contract:
  - organization_id is always an explicit parameter.
  - db.session.commit() for ProcessDefinition happens only in this file.
  - Rows are translated to in-memory ``Process`` objects once, via
    ``process_from_record``; the engine modules never see ORM objects.
  - Data-integrity conditions found by the resolver (several governing
    definitions for one field) are logged here, not in the engine.

Usage:
    from dealflow.services import process_service

    proc = process_service.create_process(org_id, {"name": "Sales", "select_field_key": "stage"})
    result = process_service.validate_change(org_id, "stage", "prospecting", "proposal", deal)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from dealflow.core.exceptions import NotFoundError, ValidationError
from dealflow.models import db
from dealflow.models.process import ProcessDefinition
from dealflow.services.option_reconciler import reconcile_field, stale_references
from dealflow.services.process_resolver import (
    build_active_process_map,
    find_ambiguous_fields,
    is_governing,
    resolve_active,
)
from dealflow.services.schema_accessor import DatabaseSchemaAccessor
from dealflow.services.transition_validator import (
    can_change_select_field,
    validate_exit_from_stage,
)
from dealflow.services.workflow_types import (
    Process,
    ProcessValidationResult,
    process_from_record,
)

logger = logging.getLogger(__name__)

_MUTABLE_ATTRS = (
    "name", "select_field_key", "stages", "transitions",
    "requirements", "enabled", "is_active",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Input validation ──────────────────────────────────────────────────────────


def _validate_payload(data: dict, *, partial: bool) -> dict:
    """Check shapes only; option values are not checked against the schema."""
    errors: dict[str, str] = {}

    for key in ("name", "select_field_key"):
        if key in data or not partial:
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                errors[key] = "required non-empty string"

    if "stages" in data:
        stages = data["stages"]
        if not isinstance(stages, list) or not all(isinstance(s, str) for s in stages):
            errors["stages"] = "must be a list of option values"

    if "transitions" in data:
        transitions = data["transitions"]
        if not isinstance(transitions, list) or not all(
            isinstance(t, dict) and isinstance(t.get("from"), str) and isinstance(t.get("to"), str)
            for t in transitions
        ):
            errors["transitions"] = "must be a list of {from, to} objects"

    if "requirements" in data:
        reqs = data["requirements"]
        if not isinstance(reqs, dict) or not all(
            isinstance(v, list) and all(isinstance(k, str) for k in v)
            for v in reqs.values()
        ):
            errors["requirements"] = "must map option values to lists of field keys"

    for key in ("enabled", "is_active"):
        if key in data and not isinstance(data[key], bool):
            errors[key] = "must be a boolean"

    if errors:
        raise ValidationError("Invalid process definition", details=errors)
    return data


# ── Reads ─────────────────────────────────────────────────────────────────────


def _query(organization_id: str):
    return (
        ProcessDefinition.query
        .filter_by(organization_id=organization_id)
        .order_by(ProcessDefinition.created_at.desc())
    )


def _get_scoped(organization_id: str, process_id: str) -> ProcessDefinition:
    row = db.session.get(ProcessDefinition, process_id)
    if not row or row.organization_id != organization_id:
        raise NotFoundError("Process", process_id, organization_id)
    return row


def list_processes(organization_id: str) -> list[dict]:
    """Return every definition of the organization, newest first."""
    return [p.to_dict() for p in _query(organization_id).all()]


def load_processes(organization_id: str) -> list[Process]:
    """In-memory ``Process`` objects for the organization, newest first."""
    return [process_from_record(p.to_dict()) for p in _query(organization_id).all()]


def get_process(organization_id: str, process_id: str) -> dict:
    """Fetch one definition.

    Raises:
        NotFoundError: If it does not exist in this organization.
    """
    return _get_scoped(organization_id, process_id).to_dict()


# ── Writes ────────────────────────────────────────────────────────────────────


def create_process(organization_id: str, data: dict) -> dict:
    """Persist a new definition.

    When it is enabled and no other definition currently governs the same
    field, it is promoted to active straight away.

    Raises:
        ValidationError: On malformed payload.
    """
    _validate_payload(data, partial=False)
    select_field_key = data["select_field_key"].strip()

    governed = any(
        p.select_field_key == select_field_key and is_governing(p)
        for p in load_processes(organization_id)
    )

    row = ProcessDefinition(
        organization_id=organization_id,
        name=data["name"].strip(),
        select_field_key=select_field_key,
        stages=data.get("stages", []),
        transitions=data.get("transitions", []),
        requirements=data.get("requirements", {}),
        enabled=data.get("enabled", True),
        is_active=data.get("is_active", False),
    )
    db.session.add(row)
    db.session.commit()
    logger.info(
        "ProcessDefinition created id=%s org=%s field=%s",
        row.id, organization_id, select_field_key,
    )

    if row.enabled and (row.is_active or not governed):
        set_active_by_field(organization_id, select_field_key, row.id)
        db.session.refresh(row)
    return row.to_dict()


def update_process(organization_id: str, process_id: str, data: dict) -> dict:
    """Apply a partial update.

    Raises:
        NotFoundError: If the definition does not exist.
        ValidationError: On malformed payload.
    """
    row = _get_scoped(organization_id, process_id)
    _validate_payload(data, partial=True)

    for attr in _MUTABLE_ATTRS:
        if attr in data:
            value = data[attr]
            setattr(row, attr, value.strip() if isinstance(value, str) else value)
    row.updated_at = _utcnow()

    db.session.commit()
    logger.info("ProcessDefinition updated id=%s", process_id)
    return row.to_dict()


def delete_process(organization_id: str, process_id: str) -> None:
    """Delete a definition.

    Raises:
        NotFoundError: If the definition does not exist.
    """
    row = _get_scoped(organization_id, process_id)
    db.session.delete(row)
    db.session.commit()
    logger.info("ProcessDefinition deleted id=%s", process_id)


def duplicate_process(organization_id: str, process_id: str) -> dict:
    """Copy a definition as a disabled, inactive draft named "<name> (Copy)"."""
    source = _get_scoped(organization_id, process_id)
    copy = ProcessDefinition(
        organization_id=organization_id,
        name=f"{source.name} (Copy)",
        select_field_key=source.select_field_key,
        stages=list(source.stages or []),
        transitions=[dict(t) for t in (source.transitions or [])],
        requirements={k: list(v) for k, v in (source.requirements or {}).items()},
        enabled=False,
        is_active=False,
    )
    db.session.add(copy)
    db.session.commit()
    logger.info("ProcessDefinition duplicated id=%s from=%s", copy.id, process_id)
    return copy.to_dict()


def set_active_by_field(organization_id: str, select_field_key: str, process_id: str | None) -> None:
    """Make ``process_id`` the only active definition for the field.

    Every definition of the organization for ``select_field_key`` loses its
    ``is_active`` marker first; ``process_id=None`` leaves the field with no
    active definition.

    Raises:
        NotFoundError: If process_id is given but not found in the organization.
        ValidationError: If process_id governs a different field.
    """
    target = None
    if process_id is not None:
        target = _get_scoped(organization_id, process_id)
        if target.select_field_key != select_field_key:
            raise ValidationError(
                f"Process {process_id} governs '{target.select_field_key}', not '{select_field_key}'",
                details={"select_field_key": select_field_key},
            )

    siblings = (
        ProcessDefinition.query
        .filter_by(organization_id=organization_id, select_field_key=select_field_key)
        .filter(ProcessDefinition.is_active.is_(True))
        .all()
    )
    for sib in siblings:
        sib.is_active = False
    if target is not None:
        target.is_active = True

    db.session.commit()
    logger.info(
        "Active process set org=%s field=%s process=%s",
        organization_id, select_field_key, process_id,
    )


# ── Engine entry points ───────────────────────────────────────────────────────


def _warn_ambiguous(organization_id: str, processes: list[Process], field_key: str | None = None) -> None:
    for key, ids in find_ambiguous_fields(processes).items():
        if field_key is not None and key != field_key:
            continue
        logger.warning(
            "Data integrity: %d governing processes for field=%s org=%s ids=%s; using %s",
            len(ids), key, organization_id, ids, ids[0],
            extra={"organization_id": organization_id, "select_field_key": key},
        )


def get_active_by_field(organization_id: str, select_field_key: str) -> dict | None:
    """Governing definition for a field, or None when the field is unconstrained."""
    processes = load_processes(organization_id)
    _warn_ambiguous(organization_id, processes, select_field_key)
    process = resolve_active(processes, select_field_key)
    if process is None:
        return None
    return get_process(organization_id, process.id)


def get_active_process_map(organization_id: str) -> dict[str, str]:
    processes = load_processes(organization_id)
    _warn_ambiguous(organization_id, processes)
    return build_active_process_map(processes)


def reconciled_options(organization_id: str, process_id: str, entity_type: str = "deals") -> list[dict]:
    """Saved stage order merged against the live options of the governed field."""
    process = process_from_record(get_process(organization_id, process_id))
    schema = DatabaseSchemaAccessor(organization_id, entity_type)
    stale = stale_references(schema, process.select_field_key, process.option_order)
    if stale:
        logger.debug(
            "Process id=%s references %d obsolete option(s): %s",
            process_id, len(stale), stale,
        )
    merged = reconcile_field(schema, process.select_field_key, process.option_order)
    return [m.to_dict() for m in merged]


def validate_change(
    organization_id: str,
    select_field_key: str,
    from_value: str,
    to_value: str,
    record: dict,
    *,
    entity_type: str = "deals",
    enforcement_enabled: bool = True,
) -> dict:
    """Fetch definitions and schema, then run the unified change check."""
    processes = load_processes(organization_id)
    _warn_ambiguous(organization_id, processes, select_field_key)
    schema = DatabaseSchemaAccessor(organization_id, entity_type)
    result = can_change_select_field(
        processes, select_field_key, from_value, to_value, record, schema,
        enforcement_enabled=enforcement_enabled,
    )
    return result.to_dict()


def validate_exit(
    organization_id: str,
    select_field_key: str,
    current_value: str,
    record: dict,
    *,
    entity_type: str = "deals",
    enforcement_enabled: bool = True,
) -> dict:
    """Requirements of the stage a record is leaving."""
    if not enforcement_enabled:
        return ProcessValidationResult.allowed().to_dict()
    processes = load_processes(organization_id)
    process = resolve_active(processes, select_field_key)
    schema = DatabaseSchemaAccessor(organization_id, entity_type)
    return validate_exit_from_stage(process, current_value, record, schema).to_dict()
