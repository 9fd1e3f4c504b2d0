from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for permission checks."""

    ADMIN = "admin"
    PRINCIPAL = "principal"
    BURSAR = "bursar"
    STAFF = "staff"


AUTHORITY_ROLES = frozenset({Role.ADMIN, Role.PRINCIPAL})
PAYROLL_ROLES = frozenset({Role.ADMIN, Role.BURSAR})


class AttemptOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED_OUT_OF_RANGE = "FAILED_OUT_OF_RANGE"


class SessionSource(str, Enum):
    """How a clock session came to exist."""

    GEOFENCE = "GEOFENCE"
    MANUAL_OVERRIDE = "MANUAL_OVERRIDE"


class ApprovalStatus(str, Enum):
    """Approval queue status. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


class ApprovalKind(str, Enum):
    ATTENDANCE_DISPUTE = "ATTENDANCE_DISPUTE"
    LESSON_PLAN = "LESSON_PLAN"
    GRADEBOOK = "GRADEBOOK"
    LEAVE_REQUEST = "LEAVE_REQUEST"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class PayrollRunStatus(str, Enum):
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"


class PayrollFlag(str, Enum):
    MISSING_STRUCTURE = "MISSING_STRUCTURE"
    NEGATIVE_NET_CLAMPED = "NEGATIVE_NET_CLAMPED"


class ReconciliationStatus(str, Enum):
    PROTOCOL_VERIFIED = "PROTOCOL_VERIFIED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"


class LedgerStatus(str, Enum):
    RECONCILED = "RECONCILED"


class ErrorKind(str, Enum):
    """Discriminator carried by failed results."""

    VALIDATION = "ValidationError"
    FORBIDDEN = "AuthorizationError"
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    ALREADY_DECIDED = "AlreadyDecided"
    DUPLICATE_RUN = "DuplicateRun"
    UNRESOLVED_DISPUTES = "UnresolvedDisputes"
