"""
Schema Accessor: read-only view over a record schema's fields.

The engine never reaches into a global schema store; callers build an
accessor (from fixtures or from the database) and pass it in.

    StaticSchemaAccessor    - fixed in-memory field list (tests, seeding)
    DatabaseSchemaAccessor  - one-shot snapshot of FieldDefinition rows
"""

from __future__ import annotations

import logging

from dealflow.services.workflow_types import (
    FieldInfo,
    SelectFieldInfo,
    option_from_dict,
)

logger = logging.getLogger(__name__)

# Technical columns never offered as stage requirements.
TECHNICAL_FIELD_KEYS = frozenset({"id", "createdAt", "updatedAt"})


class SchemaAccessor:
    """Base accessor; subclasses provide ``list_fields``."""

    def list_fields(self) -> list[FieldInfo]:
        raise NotImplementedError

    def get_field(self, key: str) -> FieldInfo | None:
        for f in self.list_fields():
            if f.key == key:
                return f
        return None

    def list_select_fields(self) -> list[SelectFieldInfo]:
        """Select-typed fields that carry at least one option."""
        return [
            SelectFieldInfo(key=f.key, label=f.label, options=f.options)
            for f in self.list_fields()
            if f.is_select
        ]

    def get_select_field(self, key: str) -> SelectFieldInfo | None:
        f = self.get_field(key)
        if f is None or not f.is_select:
            return None
        return SelectFieldInfo(key=f.key, label=f.label, options=f.options)

    def field_name(self, key: str) -> str:
        """Human-readable name of a field; the raw key when it no longer resolves."""
        f = self.get_field(key)
        return f.label if f and f.label else key

    def option_label(self, field_key: str, value: str) -> str:
        select = self.get_select_field(field_key)
        if select:
            for opt in select.options:
                if opt.value == value:
                    return opt.label
        return value

    def editable_field_keys(self, excluding=TECHNICAL_FIELD_KEYS) -> list[str]:
        """Candidate universe for stage requirements, in schema order."""
        excluded = set(excluding)
        return [
            f.key for f in self.list_fields()
            if f.key not in excluded and f.editable
        ]


class StaticSchemaAccessor(SchemaAccessor):
    """Accessor over a fixed list of fields."""

    def __init__(self, fields: list[FieldInfo]):
        self._fields = list(fields)
        self._by_key: dict[str, FieldInfo] = {}
        for f in self._fields:
            self._by_key.setdefault(f.key, f)

    @classmethod
    def from_columns(cls, columns: list[dict]) -> "StaticSchemaAccessor":
        """Build from column dicts shaped like ``FieldDefinition.to_dict()``."""
        return cls([field_info_from_column(c) for c in columns])

    def list_fields(self) -> list[FieldInfo]:
        return list(self._fields)

    def get_field(self, key: str) -> FieldInfo | None:
        return self._by_key.get(key)


class DatabaseSchemaAccessor(StaticSchemaAccessor):
    """Snapshot of an organization's field definitions for one entity type.

    The query runs once, at construction; every later call is served from
    the snapshot so the engine stays free of I/O.
    """

    def __init__(self, organization_id: str, entity_type: str = "deals"):
        from dealflow.services.field_schema_service import list_field_definitions

        self.organization_id = organization_id
        self.entity_type = entity_type
        columns = list_field_definitions(organization_id, entity_type)
        logger.debug(
            "Schema snapshot org=%s entity=%s fields=%d",
            organization_id, entity_type, len(columns),
        )
        super().__init__([field_info_from_column(c) for c in columns])


def field_info_from_column(column: dict) -> FieldInfo:
    return FieldInfo(
        key=column["field_key"],
        label=column.get("field_label") or column["field_key"],
        field_type=column.get("field_type") or "text",
        editable=column.get("is_editable", True) is not False,
        options=tuple(option_from_dict(o) for o in (column.get("options") or [])),
    )
