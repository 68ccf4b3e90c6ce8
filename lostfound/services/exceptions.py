"""Service-layer exceptions.

These are the errors callers of the services are expected to handle; the HTTP
layer maps each one to a status code (404, 400, 403, 409).
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError


class ServiceError(Exception):
    """Base exception for business rule violations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a referenced entity does not exist (or is no longer visible)."""

    def __init__(self, resource: str, identifier: Optional[str] = None, message: Optional[str] = None):
        self.resource = resource
        self.identifier = identifier
        if message is None:
            message = f"{resource} not found" if identifier is None else f"{resource} not found: {identifier}"
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input or entity state does not permit the operation."""

    pass


class AuthorizationError(ServiceError):
    """Raised when the acting user may not perform the operation."""

    pass


class ConflictError(ServiceError):
    """Raised when the operation would duplicate an existing entity."""

    pass


def build_model(model_cls, data: dict):
    """Validate ``data`` into ``model_cls``, raising ValidationError on failure.

    The first pydantic error is surfaced as ``"<field>: <message>"``.
    """
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field_path = ".".join(str(loc) for loc in first["loc"])
        raise ValidationError(f"{field_path}: {first['msg']}" if field_path else first["msg"]) from e
