"""
Option Reconciler: merges a workflow's saved option order with the live
schema options of the governed select field.

Output order:
  1. every saved value, in saved order (``current`` if still live,
     ``obsolete`` otherwise, label falling back to the raw value)
  2. every live value absent from the saved order, in schema order (``new``)

Merged lists are recomputed on every call and never stored.
"""

from __future__ import annotations

from collections.abc import Iterable

from dealflow.services.schema_accessor import SchemaAccessor
from dealflow.services.workflow_types import (
    ConfigStatus,
    MergedOption,
    OptionStatus,
    SelectOption,
)


def reconcile(
    live_options: Iterable[SelectOption],
    saved_order: Iterable[str],
) -> list[MergedOption]:
    """Merge ``saved_order`` against ``live_options``.

    Args:
        live_options: Current schema options of the field, in schema order.
        saved_order: Option values as last saved on the workflow.

    Returns:
        One ``MergedOption`` per distinct value of saved ∪ live.
    """
    live = list(live_options)
    by_value = {}
    for opt in live:
        by_value.setdefault(opt.value, opt)

    merged: list[MergedOption] = []
    seen: set[str] = set()

    for value in saved_order:
        if value in seen:
            continue
        seen.add(value)
        opt = by_value.get(value)
        if opt is not None:
            merged.append(MergedOption(opt.value, opt.label, OptionStatus.CURRENT, opt.color))
        else:
            merged.append(MergedOption(value, value, OptionStatus.OBSOLETE))

    for opt in live:
        if opt.value in seen:
            continue
        seen.add(opt.value)
        merged.append(MergedOption(opt.value, opt.label, OptionStatus.NEW, opt.color))

    return merged


def reconcile_field(
    schema: SchemaAccessor,
    field_key: str,
    saved_order: Iterable[str],
) -> list[MergedOption]:
    """``reconcile`` against the live options of ``field_key``.

    A field that has disappeared from the schema has no live options, so
    every saved value comes back ``obsolete``.
    """
    select = schema.get_select_field(field_key)
    live = select.options if select else ()
    return reconcile(live, saved_order)


def is_value_current(schema: SchemaAccessor, field_key: str, value: str) -> bool:
    """True when ``value`` is still a live option of ``field_key``."""
    field = schema.get_field(field_key)
    if field is None or not field.is_select:
        return False
    return any(opt.value == value for opt in field.options)


def option_status(
    schema: SchemaAccessor,
    field_key: str,
    option_value: str,
    configured_options: Iterable[str],
) -> ConfigStatus:
    """Editor status of one option; obsolete wins over configured."""
    if not is_value_current(schema, field_key, option_value):
        return ConfigStatus.OBSOLETE
    if option_value in set(configured_options):
        return ConfigStatus.CONFIGURED
    return ConfigStatus.NOT_CONFIGURED


def stale_references(schema: SchemaAccessor, field_key: str, values: Iterable[str]) -> list[str]:
    """Values (in input order, de-duplicated) that are no longer live."""
    select = schema.get_select_field(field_key)
    live = {opt.value for opt in select.options} if select else set()
    stale = []
    for value in values:
        if value not in live and value not in stale:
            stale.append(value)
    return stale
