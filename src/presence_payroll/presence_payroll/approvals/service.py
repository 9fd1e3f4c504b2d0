from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_QUEUE_LIMIT
from ..core.enums import AUTHORITY_ROLES, ApprovalKind, ApprovalStatus, AttemptOutcome, Decision, Role
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..core.result import returns_result
from ..users.model import Actor
from .model import ApprovalItem, Dispute
from .repository import ApprovalRepository
from .workflow import ApprovalWorkflow

logger = logging.getLogger(__name__)


class ApprovalService:
    """Use cases around the approval queue: disputes first, other kinds alongside."""

    def __init__(self, approvals: ApprovalRepository, attendance: AttendanceRepository, workflow: ApprovalWorkflow):
        self._approvals = approvals
        self._attendance = attendance
        self._workflow = workflow

    @returns_result
    def submit_dispute(
        self,
        actor: Actor,
        attempt_id: int,
        reason: str,
        proof_url: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Dispute:
        reason = require_non_empty(reason, "Reason")

        attempt = self._attendance.get_attempt(int(attempt_id))
        if not attempt:
            raise NotFoundError("Attendance attempt not found")
        actor.require_tenant(attempt.tenant_id, "attendance attempt")
        if attempt.staff_id != actor.staff_id:
            raise AuthorizationError("You can only dispute your own clock-in attempts")
        if attempt.outcome != AttemptOutcome.FAILED_OUT_OF_RANGE:
            raise InvalidStateError("This clock-in was verified; there is nothing to dispute")
        if self._approvals.get_dispute_by_attempt(attempt.attempt_id):
            raise InvalidStateError("This clock-in attempt has already been disputed")

        dispute_id = self._approvals.create_dispute(
            tenant_id=attempt.tenant_id,
            attempt_id=attempt.attempt_id,
            staff_id=attempt.staff_id,
            work_date=attempt.work_date,
            reason=reason,
            proof_url=optional_text(proof_url),
            distance_detected=attempt.distance_meters if not math.isinf(attempt.distance_meters) else None,
            created_at=now or now_local(),
        )
        if dispute_id is None:
            raise InvalidStateError("This clock-in attempt has already been disputed")
        logger.info(
            "DISPUTE_SUBMITTED tenant=%s staff=%s attempt=%s dispute=%s",
            attempt.tenant_id, attempt.staff_id, attempt.attempt_id, dispute_id,
        )
        return self._approvals.get_dispute(dispute_id)

    @returns_result
    def submit_item(self, actor: Actor, kind: ApprovalKind, title: str, reason: str = "", *, now: Optional[datetime] = None) -> ApprovalItem:
        """Queue a non-attendance item (lesson plan, gradebook, leave request)."""
        kind = ApprovalKind(kind)
        if kind == ApprovalKind.ATTENDANCE_DISPUTE:
            raise ValidationError("Attendance disputes must reference a clock-in attempt")
        title = require_non_empty(title, "Title")

        item_id = self._approvals.create_item(
            tenant_id=actor.tenant_id,
            kind=kind,
            submitted_by=actor.staff_id,
            title=title,
            reason=(reason or "").strip(),
            created_at=now or now_local(),
        )
        return self._approvals.get_item(item_id)

    @returns_result
    def approve(self, actor: Actor, item_id: int, note: Optional[str] = None, *, now: Optional[datetime] = None) -> ApprovalItem:
        return self._workflow.decide(actor, item_id, Decision.APPROVE, note=note, now=now or now_local())

    @returns_result
    def reject(self, actor: Actor, item_id: int, note: str, *, now: Optional[datetime] = None) -> ApprovalItem:
        return self._workflow.decide(actor, item_id, Decision.REJECT, note=note, now=now or now_local())

    @returns_result
    def get_dispute(self, actor: Actor, dispute_id: int) -> Dispute:
        dispute = self._approvals.get_dispute(int(dispute_id))
        if not dispute:
            raise NotFoundError("Dispute not found")
        actor.require_tenant(dispute.tenant_id, "dispute")
        if actor.role not in AUTHORITY_ROLES and actor.role != Role.BURSAR and dispute.staff_id != actor.staff_id:
            raise AuthorizationError("You do not have permission")
        return dispute

    @returns_result
    def list_pending(self, actor: Actor, kind: Optional[ApprovalKind] = None) -> Sequence[ApprovalItem]:
        actor.require_role(AUTHORITY_ROLES)
        return self._approvals.list_items(
            tenant_id=actor.tenant_id,
            status=ApprovalStatus.PENDING,
            kind=ApprovalKind(kind) if kind else None,
            limit=DEFAULT_QUEUE_LIMIT,
        )

    @returns_result
    def list_mine(self, actor: Actor) -> Sequence[ApprovalItem]:
        return self._approvals.list_items(
            tenant_id=actor.tenant_id,
            submitted_by=actor.staff_id,
            limit=DEFAULT_QUEUE_LIMIT,
        )
