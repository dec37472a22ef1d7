"""
Workflow processes blueprint.

Blueprint: process_bp
Prefix: /api/v1

All routes are scoped by the ``X-Organization-Id`` header (query param
``organization_id`` accepted as fallback).

Endpoints:
  Definitions:
    GET/POST          /processes                       -- List/create
    GET/PATCH/DELETE  /processes/<id>                  -- Single definition CRUD
    POST              /processes/<id>/duplicate        -- Copy as disabled draft
    POST              /processes/set-active            -- Promote one definition per field

  Resolution & reconciliation:
    GET   /processes/active?select_field_key=...       -- Governing definition or null
    GET   /processes/active-map                        -- select_field_key -> process id
    GET   /processes/<id>/options                      -- Saved order merged with live schema

  Validation:
    POST  /processes/validate-transition               -- Can a record move from -> to
    POST  /processes/validate-exit                     -- Requirements of the stage being left

  Schema views:
    GET   /processes/select-fields                     -- Select fields with live options
    GET   /processes/editable-fields                   -- Candidate requirement fields

Layer contract:
    - Blueprint: parse + validate input, call service, return JSON.
    - NO db.session calls here.
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from dealflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from dealflow.services import process_service
from dealflow.services.schema_accessor import DatabaseSchemaAccessor
from dealflow.utils.errors import E, api_error, error_for

logger = logging.getLogger(__name__)

process_bp = Blueprint("processes", __name__, url_prefix="/api/v1")


# ── Scope helpers ─────────────────────────────────────────────────────────────


def _organization_id() -> str | None:
    org = request.headers.get("X-Organization-Id") or request.args.get("organization_id")
    return org.strip() if org and org.strip() else None


def _organization_required() -> tuple[str | None, tuple | None]:
    org = _organization_id()
    if not org:
        return None, api_error(E.ORG_SCOPE_REQUIRED, "Missing X-Organization-Id")
    return org, None


def _entity_type() -> str:
    return request.args.get("entity_type") or current_app.config.get("DEFAULT_ENTITY_TYPE", "deals")


def _enforcement_enabled() -> bool:
    return bool(current_app.config.get("PROCESS_ENFORCEMENT_ENABLED", True))


# ── Error handlers ────────────────────────────────────────────────────────────


@process_bp.errorhandler(NotFoundError)
@process_bp.errorhandler(ValidationError)
@process_bp.errorhandler(ConflictError)
def _handle_service_error(error: Exception):
    return error_for(error)


@process_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if not isinstance(error, HTTPException):
        logger.exception("Unexpected error in process_bp endpoint=%s", request.endpoint)
    return error_for(error)


# ═════════════════════════════════════════════════════════════════════════
# Definitions
# ═════════════════════════════════════════════════════════════════════════


@process_bp.route("/processes", methods=["GET"])
def list_processes():
    """List the organization's process definitions, newest first."""
    org, err = _organization_required()
    if err:
        return err
    processes = process_service.list_processes(org)
    return jsonify({"processes": processes, "total": len(processes)}), 200


@process_bp.route("/processes", methods=["POST"])
def create_process():
    """Create a definition.

    Body: { name, select_field_key, stages?, transitions?, requirements?,
            enabled?, is_active? }
    """
    org, err = _organization_required()
    if err:
        return err
    data = request.get_json(silent=True) or {}

    name = data.get("name") or ""
    if not isinstance(name, str) or not name.strip() or len(name) > 200:
        return api_error(E.VALIDATION_REQUIRED, "name is required and must be <= 200 chars")
    if not data.get("select_field_key"):
        return api_error(E.VALIDATION_REQUIRED, "select_field_key is required")

    process = process_service.create_process(org, data)
    return jsonify({"process": process}), 201


@process_bp.route("/processes/<process_id>", methods=["GET"])
def get_process(process_id):
    org, err = _organization_required()
    if err:
        return err
    return jsonify({"process": process_service.get_process(org, process_id)}), 200


@process_bp.route("/processes/<process_id>", methods=["PATCH"])
def update_process(process_id):
    """Partial update of a definition."""
    org, err = _organization_required()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    process = process_service.update_process(org, process_id, data)
    return jsonify({"process": process}), 200


@process_bp.route("/processes/<process_id>", methods=["DELETE"])
def delete_process(process_id):
    org, err = _organization_required()
    if err:
        return err
    process_service.delete_process(org, process_id)
    return jsonify({"deleted": True}), 200


@process_bp.route("/processes/<process_id>/duplicate", methods=["POST"])
def duplicate_process(process_id):
    """Copy a definition as a disabled, inactive draft."""
    org, err = _organization_required()
    if err:
        return err
    process = process_service.duplicate_process(org, process_id)
    return jsonify({"process": process}), 201


@process_bp.route("/processes/set-active", methods=["POST"])
def set_active():
    """Body: { select_field_key, process_id | null }"""
    org, err = _organization_required()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    field_key = data.get("select_field_key")
    if not field_key:
        return api_error(E.VALIDATION_REQUIRED, "select_field_key is required")

    process_service.set_active_by_field(org, field_key, data.get("process_id"))
    return jsonify({"select_field_key": field_key, "process_id": data.get("process_id")}), 200


# ═════════════════════════════════════════════════════════════════════════
# Resolution & reconciliation
# ═════════════════════════════════════════════════════════════════════════


@process_bp.route("/processes/active", methods=["GET"])
def get_active():
    """Governing definition for ?select_field_key=..., or null."""
    org, err = _organization_required()
    if err:
        return err
    field_key = request.args.get("select_field_key", "")
    if not field_key:
        return api_error(E.VALIDATION_REQUIRED, "select_field_key is required")
    if not _enforcement_enabled():
        return jsonify({"process": None, "enforcement_enabled": False}), 200
    process = process_service.get_active_by_field(org, field_key)
    return jsonify({"process": process, "enforcement_enabled": True}), 200


@process_bp.route("/processes/active-map", methods=["GET"])
def get_active_map():
    org, err = _organization_required()
    if err:
        return err
    return jsonify({"active": process_service.get_active_process_map(org)}), 200


@process_bp.route("/processes/<process_id>/options", methods=["GET"])
def get_options(process_id):
    """Saved stage order merged with the live options (current/new/obsolete)."""
    org, err = _organization_required()
    if err:
        return err
    options = process_service.reconciled_options(org, process_id, _entity_type())
    return jsonify({"options": options}), 200


# ═════════════════════════════════════════════════════════════════════════
# Validation
# ═════════════════════════════════════════════════════════════════════════


def _string_arg(data: dict, key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


@process_bp.route("/processes/validate-transition", methods=["POST"])
def validate_transition():
    """Body: { select_field_key, from_value, to_value, record }

    Always 200: a blocked move is a result, not an error.
    """
    org, err = _organization_required()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    field_key = _string_arg(data, "select_field_key")
    from_value = _string_arg(data, "from_value")
    to_value = _string_arg(data, "to_value")
    if not field_key or from_value is None or to_value is None:
        return api_error(
            E.VALIDATION_REQUIRED,
            "select_field_key, from_value and to_value are required",
        )
    record = data.get("record") or {}
    if not isinstance(record, dict):
        return api_error(E.VALIDATION_INVALID, "record must be an object")

    result = process_service.validate_change(
        org, field_key, from_value, to_value, record,
        entity_type=_entity_type(),
        enforcement_enabled=_enforcement_enabled(),
    )
    return jsonify(result), 200


@process_bp.route("/processes/validate-exit", methods=["POST"])
def validate_exit():
    """Body: { select_field_key, current_value, record }"""
    org, err = _organization_required()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    field_key = _string_arg(data, "select_field_key")
    current_value = _string_arg(data, "current_value")
    if not field_key or current_value is None:
        return api_error(E.VALIDATION_REQUIRED, "select_field_key and current_value are required")
    record = data.get("record") or {}
    if not isinstance(record, dict):
        return api_error(E.VALIDATION_INVALID, "record must be an object")

    result = process_service.validate_exit(
        org, field_key, current_value, record,
        entity_type=_entity_type(),
        enforcement_enabled=_enforcement_enabled(),
    )
    return jsonify(result), 200


# ═════════════════════════════════════════════════════════════════════════
# Schema views
# ═════════════════════════════════════════════════════════════════════════


@process_bp.route("/processes/select-fields", methods=["GET"])
def list_select_fields():
    org, err = _organization_required()
    if err:
        return err
    schema = DatabaseSchemaAccessor(org, _entity_type())
    return jsonify({"fields": [f.to_dict() for f in schema.list_select_fields()]}), 200


@process_bp.route("/processes/editable-fields", methods=["GET"])
def list_editable_fields():
    """Fields an administrator may pick as stage requirements."""
    org, err = _organization_required()
    if err:
        return err
    schema = DatabaseSchemaAccessor(org, _entity_type())
    fields = [
        {"field_key": key, "field_name": schema.field_name(key)}
        for key in schema.editable_field_keys()
    ]
    return jsonify({"fields": fields}), 200
