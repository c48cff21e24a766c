"""
Domain error taxonomy.

Services raise these; the API layer turns them into the standard JSON error
envelope (see core.middleware.error_handling).
"""

from typing import Any, Optional

from fastapi import status


class DomainError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DomainError):
    """A pair, event, user or catalogue entry id does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class NotAuthenticatedError(DomainError):
    """No valid credentials were presented."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"


class NotAuthorizedError(DomainError):
    """The caller is authenticated but may not act on the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "NOT_AUTHORIZED"


class InvalidStateError(DomainError):
    """The resource is not in a state that allows the requested transition."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"


class CooldownError(InvalidStateError):
    """The transition is allowed, just not yet."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "COOLDOWN"


class ValidationError(DomainError):
    """Malformed input that passed schema validation but fails domain rules."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class ConflictError(DomainError):
    """Uniqueness violation, e.g. a duplicate email or student id."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
