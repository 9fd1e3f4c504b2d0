from __future__ import annotations

from typing import Any, Optional

from .enums import ErrorKind


class DomainError(Exception):
    """Base exception for business rule violations.

    Domain errors are expected outcomes: exposed operations turn them into
    failed results instead of letting them escape.
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, data: Optional[Any] = None):
        super().__init__(message)
        self.data = data


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    kind = ErrorKind.FORBIDDEN


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND


class InvalidStateError(DomainError):
    """Raised when a transition is not legal from the current state."""

    kind = ErrorKind.INVALID_STATE


class AlreadyDecidedError(InvalidStateError):
    """Raised when an approval item already left PENDING."""

    kind = ErrorKind.ALREADY_DECIDED


class DuplicateRunError(DomainError):
    """Raised when a payroll run already exists for (tenant, month, year)."""

    kind = ErrorKind.DUPLICATE_RUN


class UnresolvedDisputesError(InvalidStateError):
    """Raised when a ledger export would include staff with open disputes."""

    kind = ErrorKind.UNRESOLVED_DISPUTES


class TenantScopeError(Exception):
    """Programmer error: an entity was referenced across tenants.

    Deliberately not a DomainError, so it is never folded into a result.
    """
