"""
Exceptions raised by the dealflow service layer.

Blueprints turn these into the JSON envelope of ``dealflow.utils.errors``:

    NotFoundError    -> 404
    ValidationError  -> 422
    ConflictError    -> 409

Engine outcomes (illegal transition, missing requirements, schema drift) are
results, not exceptions; they never pass through here.

Usage:
    from dealflow.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Process", process_id, organization_id)
    raise ValidationError("Invalid process definition", details={"stages": "..."})
"""


class ServiceError(Exception):
    """Common base so callers can catch every service-level rejection at once."""


class NotFoundError(ServiceError):
    """The resource does not exist in the caller's organization.

    A row owned by another organization is reported the same way, so the
    response never reveals that a foreign id exists. ``organization_id`` is
    kept on the instance for logs and is not part of the message.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        organization_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.organization_id = organization_id
        suffix = f" id={resource_id}" if resource_id is not None else ""
        super().__init__(f"{resource}{suffix} not found")


class ValidationError(ServiceError):
    """Well-formed input that a business rule rejects.

    ``details`` maps offending keys to short explanations.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(ServiceError):
    """The write would duplicate a unique key (e.g. a field_key in one schema)."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")
