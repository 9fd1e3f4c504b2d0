"""Approval state machine shared by every queue item kind.

PENDING -> APPROVED | REJECTED, both terminal. Kind-specific consequences
are plugged in as DecisionEffect strategies keyed by ApprovalKind.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional, Protocol

from ..attendance.model import SessionOpen
from ..common.validators import optional_text
from ..core.enums import AUTHORITY_ROLES, ApprovalKind, ApprovalStatus, Decision
from ..core.exceptions import AlreadyDecidedError, NotFoundError, ValidationError
from ..notifications.notifier import LoggingNotifier, Notifier, notify_safely
from ..users.model import Actor
from .model import ApprovalItem
from .repository import ApprovalRepository

logger = logging.getLogger(__name__)

_TARGET_STATUS = {
    Decision.APPROVE: ApprovalStatus.APPROVED,
    Decision.REJECT: ApprovalStatus.REJECTED,
}


class DecisionEffect(Protocol):
    """Kind-specific consequence of approving an item.

    The effect only describes the write; the repository commits it in the
    same transaction as the status change.
    """

    def session_to_open(self, item: ApprovalItem) -> Optional[SessionOpen]:
        raise NotImplementedError


class ApprovalWorkflow:
    def __init__(
        self,
        approvals: ApprovalRepository,
        *,
        effects: Optional[Mapping[ApprovalKind, DecisionEffect]] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._approvals = approvals
        self._effects = dict(effects or {})
        self._notifier = notifier or LoggingNotifier()

    def decide(
        self,
        actor: Actor,
        item_id: int,
        decision: Decision,
        *,
        note: Optional[str] = None,
        now: datetime,
    ) -> ApprovalItem:
        actor.require_role(AUTHORITY_ROLES, "Only a principal or administrator can decide approvals")

        item = self._approvals.get_item(int(item_id))
        if not item:
            raise NotFoundError("Approval item not found")
        actor.require_tenant(item.tenant_id, "approval item")

        if item.status.is_terminal:
            raise AlreadyDecidedError(f"Already processed ({item.status.value})", data=item)

        note = optional_text(note)
        if decision == Decision.REJECT and not note:
            raise ValidationError("A rejection note is required")

        target = _TARGET_STATUS[decision]
        opening = None
        if target == ApprovalStatus.APPROVED:
            effect = self._effects.get(item.kind)
            if effect:
                opening = effect.session_to_open(item)

        won = self._approvals.decide(
            item_id=item.item_id,
            status=target,
            decided_by=actor.staff_id,
            decided_at=now,
            decision_note=note,
            session=opening,
        )
        if not won:
            # Someone else decided between our read and our update.
            current = self._approvals.get_item(item.item_id)
            raise AlreadyDecidedError(f"Already processed ({current.status.value})", data=current)

        decided = self._approvals.get_item(item.item_id)
        logger.info(
            "%s tenant=%s item=%s kind=%s by=%s",
            target.value, item.tenant_id, item.item_id, item.kind.value, actor.staff_id,
        )
        if opening:
            logger.info(
                "Override credited staff=%s date=%s dispute=%s",
                opening.staff_id, opening.work_date, opening.dispute_id,
            )

        notify_safely(
            self._notifier,
            tenant_id=item.tenant_id,
            recipient_id=item.submitted_by,
            subject=f"{item.title}: {target.value.lower()}",
            body=note or f"Your submission was {target.value.lower()}.",
        )
        return decided
