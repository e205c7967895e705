"""Domain error hierarchy shared by the identity, guard, ticket and persistence layers."""

from __future__ import annotations


class MaintDeskError(RuntimeError):
    """Base error carrying a stable machine-readable code and an HTTP status."""

    code = "internal_error"
    status_code = 500


class UnauthenticatedError(MaintDeskError):
    """No identity could be established for the request."""

    code = "unauthenticated"
    status_code = 401


class MissingCredentialError(UnauthenticatedError):
    """No credential was presented, or it is not a token at all."""


class InvalidCredentialError(MaintDeskError):
    """The credential failed signature or expiry checks."""

    code = "invalid_credential"
    status_code = 401


class ForbiddenError(MaintDeskError):
    """The caller's role is not permitted to perform the operation."""

    code = "forbidden"
    status_code = 403


class TicketNotFoundError(MaintDeskError):
    """The ticket does not exist or lies outside the caller's location scope."""

    code = "not_found"
    status_code = 404


class ValidationFailedError(MaintDeskError):
    """Required fields for the requested operation are missing or inconsistent."""

    code = "validation_failed"
    status_code = 422


class InvalidTicketTransitionError(MaintDeskError):
    """The ticket's current status does not allow the requested transition."""

    code = "invalid_transition"
    status_code = 409


class ConflictError(MaintDeskError):
    code = "conflict"
    status_code = 409


class PersistenceError(MaintDeskError):
    """The store was unreachable or rejected the query."""

    code = "persistence_failure"
    status_code = 503
