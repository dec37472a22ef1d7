"""
Workflow data model: in-memory shapes shared by the reconciliation and
transition-validation engine.

Persisted process rows use a different naming convention than the
in-memory model; ``process_from_record`` / ``process_to_record`` are the
only places where the two meet:

    stages            <-> option_order
    requirements      <-> stage_requirements
    select_field_key  <-> select_field_key

Usage:
    from dealflow.services.workflow_types import process_from_record
    process = process_from_record(row.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class OptionStatus(str, Enum):
    """Reconciled status of an option against the live schema."""
    CURRENT = "current"
    NEW = "new"
    OBSOLETE = "obsolete"


class ConfigStatus(str, Enum):
    """Status of a single option inside the workflow editor."""
    CONFIGURED = "configured"
    NOT_CONFIGURED = "not-configured"
    OBSOLETE = "obsolete"


class BlockReason(str, Enum):
    TRANSITION = "transition"
    REQUIREMENTS = "requirements"


# ═════════════════════════════════════════════════════════════════════════════
# Schema snapshot
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str
    color: str | None = None

    def to_dict(self) -> dict:
        data = {"value": self.value, "label": self.label}
        if self.color is not None:
            data["color"] = self.color
        return data


@dataclass(frozen=True)
class FieldInfo:
    """One column of a record schema (any type)."""
    key: str
    label: str
    field_type: str = "text"
    editable: bool = True
    options: tuple[SelectOption, ...] = ()

    @property
    def is_select(self) -> bool:
        return self.field_type == "select" and len(self.options) > 0


@dataclass(frozen=True)
class SelectFieldInfo:
    """A select-typed field with its live option list."""
    key: str
    label: str
    options: tuple[SelectOption, ...] = ()

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "options": [o.to_dict() for o in self.options],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Process (workflow definition)
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProcessTransition:
    from_value: str
    to_value: str

    def to_dict(self) -> dict:
        return {"from": self.from_value, "to": self.to_value}


@dataclass
class Process:
    """Workflow definition overlaid on one select field."""
    id: str
    name: str
    select_field_key: str
    enabled: bool = True
    is_active: bool = False
    option_order: list[str] = field(default_factory=list)
    transitions: list[ProcessTransition] = field(default_factory=list)
    stage_requirements: dict[str, list[str]] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    def allows(self, from_value: str, to_value: str) -> bool:
        """True when the directed pair is configured verbatim."""
        return ProcessTransition(from_value, to_value) in self.transitions

    def requirements_for(self, option_value: str) -> list[str]:
        return list(self.stage_requirements.get(option_value) or [])


# ═════════════════════════════════════════════════════════════════════════════
# Derived, transient outputs
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MergedOption:
    value: str
    label: str
    status: OptionStatus
    color: str | None = None

    def to_dict(self) -> dict:
        data = {"value": self.value, "label": self.label, "status": self.status.value}
        if self.color is not None:
            data["color"] = self.color
        return data


@dataclass(frozen=True)
class MissingField:
    field_key: str
    field_name: str

    def to_dict(self) -> dict:
        return {"field_key": self.field_key, "field_name": self.field_name}


@dataclass
class ProcessValidationResult:
    can_move: bool
    missing_fields: list[MissingField] = field(default_factory=list)
    message: str | None = None
    blocked_by: BlockReason | None = None

    @classmethod
    def allowed(cls) -> "ProcessValidationResult":
        return cls(can_move=True)

    def to_dict(self) -> dict:
        return {
            "can_move": self.can_move,
            "missing_fields": [m.to_dict() for m in self.missing_fields],
            "message": self.message,
            "blocked_by": self.blocked_by.value if self.blocked_by else None,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Boundary translation (persisted JSON <-> in-memory)
# ═════════════════════════════════════════════════════════════════════════════

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_transitions(raw: Any) -> list[ProcessTransition]:
    transitions = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        src, dst = item.get("from"), item.get("to")
        if src is None or dst is None:
            continue
        transitions.append(ProcessTransition(str(src), str(dst)))
    return transitions


def process_from_record(data: dict) -> Process:
    """Build an in-memory ``Process`` from the persisted JSON shape.

    Missing collections default to empty, ``enabled`` defaults to True and
    timestamps default to now, mirroring how the stored rows are read by
    the workflow editor.
    """
    requirements = data.get("requirements") or {}
    return Process(
        id=str(data["id"]),
        name=data.get("name") or "",
        select_field_key=data.get("select_field_key") or "",
        enabled=data.get("enabled") if data.get("enabled") is not None else True,
        is_active=bool(data.get("is_active", False)),
        option_order=[str(v) for v in (data.get("stages") or [])],
        transitions=_parse_transitions(data.get("transitions")),
        stage_requirements={
            str(stage): [str(k) for k in (keys or [])]
            for stage, keys in requirements.items()
        },
        created_at=data.get("created_at") or _now_iso(),
        updated_at=data.get("updated_at") or _now_iso(),
    )


def process_to_record(process: Process) -> dict:
    """Inverse of ``process_from_record``."""
    return {
        "id": process.id,
        "name": process.name,
        "enabled": process.enabled,
        "select_field_key": process.select_field_key,
        "stages": list(process.option_order),
        "transitions": [t.to_dict() for t in process.transitions],
        "requirements": {k: list(v) for k, v in process.stage_requirements.items()},
        "is_active": process.is_active,
        "created_at": process.created_at,
        "updated_at": process.updated_at,
    }


def option_from_dict(data: dict) -> SelectOption:
    return SelectOption(
        value=str(data["value"]),
        label=str(data.get("label") or data["value"]),
        color=data.get("color"),
    )
