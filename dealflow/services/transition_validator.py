"""
Transition Validator: decides whether a record may move a governed select
field from one option value to another.

Rules, in order:
  1. no governing process          -> allowed
  2. from == to                    -> allowed (no-op)
  3. transitions configured and the (from, to) pair is not one of them
                                   -> blocked, reason "transition", no missing fields
  4. requirements of the target option: every listed field must be filled
                                   -> blocked, reason "requirements", all missing fields

Illegal transitions and missing requirements are results, never exceptions.
Only a missing from/to value (a caller bug) raises ``ValueError``.

The functions here are pure: they take a process, a schema snapshot and the
record's current values, and perform no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dealflow.services.process_resolver import resolve_active
from dealflow.services.schema_accessor import SchemaAccessor
from dealflow.services.workflow_types import (
    BlockReason,
    MissingField,
    Process,
    ProcessValidationResult,
)


def is_missing(value: Any) -> bool:
    """Empty-value rule for stage requirements.

    None and blank strings are missing, as are empty lists and tuples.
    Numbers (0 included) and booleans (False included) are present.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def collect_missing_fields(
    required_keys: Iterable[str],
    record: Mapping[str, Any],
    schema: SchemaAccessor | None = None,
) -> list[MissingField]:
    """Every required key whose record value is missing, in requirement order.

    Names come from the schema; a key the schema no longer knows is
    reported under its raw key.
    """
    missing = []
    seen = set()
    for key in required_keys:
        if key in seen:
            continue
        seen.add(key)
        if is_missing(record.get(key)):
            name = schema.field_name(key) if schema is not None else key
            missing.append(MissingField(field_key=key, field_name=name))
    return missing


def _label(schema: SchemaAccessor | None, field_key: str, value: str) -> str:
    if schema is None:
        return value
    return schema.option_label(field_key, value)


def _require_value(name: str, value: Any) -> None:
    if value is None:
        raise ValueError(f"{name} is required")


def validate_transition(
    process: Process | None,
    from_value: str,
    to_value: str,
    record: Mapping[str, Any],
    schema: SchemaAccessor | None = None,
) -> ProcessValidationResult:
    """Check a move from ``from_value`` to ``to_value`` under ``process``.

    Args:
        process: Governing workflow, or None when the field is unconstrained.
        from_value: Current option value of the record.
        to_value: Requested option value.
        record: Current field values of the record.
        schema: Snapshot used for option labels and field names.

    Returns:
        ProcessValidationResult.

    Raises:
        ValueError: If from_value or to_value is None.
    """
    _require_value("from_value", from_value)
    _require_value("to_value", to_value)

    if process is None or from_value == to_value:
        return ProcessValidationResult.allowed()

    field_key = process.select_field_key

    if process.transitions and not process.allows(from_value, to_value):
        from_label = _label(schema, field_key, from_value)
        to_label = _label(schema, field_key, to_value)
        return ProcessValidationResult(
            can_move=False,
            missing_fields=[],
            message=f'Transition not allowed: "{from_label}" -> "{to_label}"',
            blocked_by=BlockReason.TRANSITION,
        )

    missing = collect_missing_fields(process.requirements_for(to_value), record or {}, schema)
    if missing:
        names = ", ".join(m.field_name for m in missing)
        to_label = _label(schema, field_key, to_value)
        return ProcessValidationResult(
            can_move=False,
            missing_fields=missing,
            message=(
                f'{len(missing)} required field(s) missing to enter "{to_label}": {names}'
            ),
            blocked_by=BlockReason.REQUIREMENTS,
        )

    return ProcessValidationResult.allowed()


def validate_exit_from_stage(
    process: Process | None,
    current_value: str,
    record: Mapping[str, Any],
    schema: SchemaAccessor | None = None,
) -> ProcessValidationResult:
    """Check the requirements configured on the stage a record is leaving.

    Same requirement map and empty-value rule as ``validate_transition``,
    keyed on the current value instead of the target.
    """
    _require_value("current_value", current_value)

    if process is None:
        return ProcessValidationResult.allowed()

    missing = collect_missing_fields(process.requirements_for(current_value), record or {}, schema)
    if not missing:
        return ProcessValidationResult.allowed()

    label = _label(schema, process.select_field_key, current_value)
    names = ", ".join(m.field_name for m in missing)
    return ProcessValidationResult(
        can_move=False,
        missing_fields=missing,
        message=f'Cannot leave "{label}". Required fields: {names}',
        blocked_by=BlockReason.REQUIREMENTS,
    )


def can_change_select_field(
    processes: Iterable[Process],
    field_key: str,
    from_value: str,
    to_value: str,
    record: Mapping[str, Any],
    schema: SchemaAccessor | None = None,
    *,
    enforcement_enabled: bool = True,
) -> ProcessValidationResult:
    """Resolve the governing process for ``field_key`` and validate the move.

    With enforcement switched off every change is allowed.
    """
    _require_value("from_value", from_value)
    _require_value("to_value", to_value)

    if from_value == to_value or not enforcement_enabled:
        return ProcessValidationResult.allowed()

    process = resolve_active(processes, field_key)
    return validate_transition(process, from_value, to_value, record, schema)
