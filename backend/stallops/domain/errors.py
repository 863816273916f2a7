# Overview: Typed failures raised by the domain rules; mapped to HTTP codes by routes.

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures."""

    code = "domain_error"
    http_status = 400


class ValidationError(DomainError, ValueError):
    """Malformed or out-of-range input (negative amount, missing actor, ...)."""

    code = "validation_error"
    http_status = 400


class InvalidStateTransition(DomainError):
    """The record's current status does not permit the requested operation."""

    code = "invalid_state_transition"
    http_status = 409

    def __init__(self, entity: str, current: str, action: str, allowed_from=None):
        self.entity = entity
        self.current = current
        self.action = action
        self.allowed_from = tuple(allowed_from or ())
        message = f"Cannot {action} {entity}: current status is '{current}'"
        if self.allowed_from:
            message += f", must be one of: {', '.join(self.allowed_from)}"
        super().__init__(message)


class InsufficientStock(DomainError):
    """A stock movement asks for more than is available."""

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, available, requested, location: str = "production house"):
        self.available = available
        self.requested = requested
        self.location = location
        super().__init__(
            f"Insufficient stock in {location}: available {available}, requested {requested}"
        )


class NotFound(DomainError, LookupError):
    """A referenced record or sub-entity does not exist."""

    code = "not_found"
    http_status = 404


class VersionConflict(DomainError):
    """The record changed since the caller last read it."""

    code = "version_conflict"
    http_status = 409

    def __init__(self, entity: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{entity} was modified concurrently: expected version {expected}, found {actual}"
        )


class PermissionDenied(DomainError):
    """Actor role is not allowed to perform the operation."""

    code = "permission_denied"
    http_status = 403
