from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from ..attendance.model import SessionOpen
from ..attendance.repository import AttendanceRepository
from ..core.enums import SessionSource
from .model import ApprovalItem
from .repository import ApprovalRepository
from .workflow import DecisionEffect


class AttendanceCreditEffect(DecisionEffect):
    """Approved dispute: the disputed day becomes a present day.

    Opens a MANUAL_OVERRIDE clock session stamped with the original attempt
    time. If a session already exists for that day it is left as is, so
    repeating the effect never credits the day twice.
    """

    def __init__(self, approvals: ApprovalRepository, attendance: AttendanceRepository):
        self._approvals = approvals
        self._attendance = attendance

    def session_to_open(self, item: ApprovalItem) -> Optional[SessionOpen]:
        dispute = self._approvals.get_dispute(item.item_id)
        if not dispute:
            raise LookupError(f"approval item {item.item_id} has no dispute row")

        attempt = self._attendance.get_attempt(dispute.attempt_id)
        clock_in = attempt.timestamp if attempt else datetime.combine(dispute.work_date, time())
        return SessionOpen(
            tenant_id=dispute.tenant_id,
            staff_id=dispute.staff_id,
            work_date=dispute.work_date,
            clock_in_time=clock_in,
            source=SessionSource.MANUAL_OVERRIDE,
            dispute_id=dispute.dispute_id,
        )
