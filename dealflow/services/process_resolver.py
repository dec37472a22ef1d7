"""
Active-Process Resolver: picks the definition that governs a select field.

A definition governs its field only when BOTH flags are set:
  - ``enabled``    - soft on/off toggle on the definition itself
  - ``is_active``  - the promotion marker written by set-active

Storage does not enforce "one active definition per field". When several
qualify, the first in input order wins; the engine does not log or raise,
``find_ambiguous_fields`` exists so callers can report it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from dealflow.services.workflow_types import Process


def is_governing(process: Process) -> bool:
    return process.enabled is True and process.is_active is True


def resolve_active(processes: Iterable[Process], field_key: str) -> Process | None:
    """Return the governing definition for ``field_key`` or None.

    None means the field behaves as an unconstrained select.
    """
    for process in processes:
        if process.select_field_key == field_key and is_governing(process):
            return process
    return None


def find_ambiguous_fields(processes: Iterable[Process]) -> dict[str, list[str]]:
    """Fields with more than one governing definition -> their ids, in input order."""
    by_field: dict[str, list[str]] = {}
    for process in processes:
        if is_governing(process):
            by_field.setdefault(process.select_field_key, []).append(process.id)
    return {key: ids for key, ids in by_field.items() if len(ids) > 1}


def build_active_process_map(processes: Iterable[Process]) -> dict[str, str]:
    """ActiveProcessMap: select_field_key -> id of the resolved definition."""
    active: dict[str, str] = {}
    for process in processes:
        if is_governing(process):
            active.setdefault(process.select_field_key, process.id)
    return active


def resolve_from_map(
    processes_by_id: Mapping[str, Process],
    active_map: Mapping[str, str],
    field_key: str,
) -> Process | None:
    """O(1) lookup through an ActiveProcessMap.

    The mapped definition must still exist, still govern ``field_key`` and
    still carry both flags; otherwise the field is unconstrained.
    """
    process_id = active_map.get(field_key)
    if process_id is None:
        return None
    process = processes_by_id.get(process_id)
    if process is None or process.select_field_key != field_key:
        return None
    return process if is_governing(process) else None
