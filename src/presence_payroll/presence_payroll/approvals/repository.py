from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..attendance.model import SessionOpen
from ..core.enums import ApprovalKind, ApprovalStatus
from .model import ApprovalItem, Dispute


class ApprovalRepository(Protocol):
    # Generic queue
    def create_item(
        self,
        *,
        tenant_id: int,
        kind: ApprovalKind,
        submitted_by: int,
        title: str,
        reason: str,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get_item(self, item_id: int) -> Optional[ApprovalItem]:
        raise NotImplementedError

    def decide(
        self,
        *,
        item_id: int,
        status: ApprovalStatus,
        decided_by: int,
        decided_at: datetime,
        decision_note: Optional[str],
        session: Optional[SessionOpen] = None,
    ) -> bool:
        """Compare-and-set: only updates a row that is still PENDING.

        When the update wins and ``session`` is given, that clock session is
        opened in the same transaction.
        """

        raise NotImplementedError

    def list_items(
        self,
        *,
        tenant_id: int,
        status: Optional[ApprovalStatus] = None,
        kind: Optional[ApprovalKind] = None,
        submitted_by: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[ApprovalItem]:
        raise NotImplementedError

    # Attendance disputes
    def create_dispute(
        self,
        *,
        tenant_id: int,
        attempt_id: int,
        staff_id: int,
        work_date: date,
        reason: str,
        proof_url: Optional[str],
        distance_detected: Optional[float],
        created_at: datetime,
    ) -> Optional[int]:
        """Create the queue item and dispute row together.

        Returns None when the attempt already has a dispute.
        """

        raise NotImplementedError

    def get_dispute(self, dispute_id: int) -> Optional[Dispute]:
        raise NotImplementedError

    def get_dispute_by_attempt(self, attempt_id: int) -> Optional[Dispute]:
        raise NotImplementedError

    def list_disputes(
        self,
        *,
        tenant_id: int,
        start_date: date,
        end_date: date,
        status: Optional[ApprovalStatus] = None,
        staff_id: Optional[int] = None,
    ) -> Sequence[Dispute]:
        """Disputes whose disputed work date falls in [start_date, end_date]."""

        raise NotImplementedError
