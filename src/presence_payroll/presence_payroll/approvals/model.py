from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import ApprovalKind, ApprovalStatus


@dataclass(frozen=True)
class ApprovalItem:
    """One row in the shared approval queue, whatever its kind."""

    item_id: int
    tenant_id: int
    kind: ApprovalKind
    submitted_by: int
    title: str
    reason: str
    status: ApprovalStatus
    created_at: datetime
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    decision_note: Optional[str] = None


@dataclass(frozen=True)
class Dispute:
    """An ATTENDANCE_DISPUTE approval item joined with its attempt details.

    ``dispute_id`` is the approval item id.
    """

    dispute_id: int
    tenant_id: int
    attempt_id: int
    staff_id: int
    work_date: date
    reason: str
    proof_url: Optional[str]
    distance_detected: Optional[float]
    status: ApprovalStatus
    created_at: datetime
    decision_note: Optional[str] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
