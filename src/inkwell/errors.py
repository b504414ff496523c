"""Domain error kinds raised by the service layer.

Services raise these directly; the HTTP error handler maps each kind to a
status code. NotFound is used for both "missing" and "not visible to you".
"""

from __future__ import annotations


class InkwellError(ValueError):
    """Base class for domain errors. Carries a machine code and offending ids."""

    status_code: int = 400
    default_code: str = "ERROR"

    def __init__(self, message: str, code: str | None = None, ids: dict[str, int | str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.ids = ids or {}


class NotFoundError(InkwellError):
    """Entity absent, or present but not visible to the caller."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, model: str, entity_id: int | str, id_field: str = "id") -> None:
        super().__init__(
            f"Did not find any {model} with {id_field} {entity_id}.",
            ids={id_field: entity_id},
        )
        self.model = model


class ValidationError(InkwellError):
    """Malformed scope or payload that passed schema validation."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class ConflictError(InkwellError):
    """Operation conflicts with existing state (duplicate join, last owner, duplicate tag)."""

    status_code = 409
    default_code = "CONFLICT"


class ForbiddenError(InkwellError):
    """Authenticated caller lacks the required role."""

    status_code = 403
    default_code = "FORBIDDEN"
