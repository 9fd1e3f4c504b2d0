from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date

from ..approvals.repository import ApprovalRepository
from ..core.enums import AUTHORITY_ROLES, PAYROLL_ROLES, ApprovalStatus, AttemptOutcome, ReconciliationStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import returns_result
from ..attendance.repository import AttendanceRepository
from ..payroll.repository import PayrollRepository
from ..users.model import Actor
from ..users.repository import UserRepository
from .model import ForensicSummary, OverrideDetail, ReconciliationReport, StaffReconciliation

logger = logging.getLogger(__name__)

_AUDIT_ROLES = AUTHORITY_ROLES | PAYROLL_ROLES


class ReconciliationService:
    """Read-only audit views joining payroll items with attendance overrides."""

    def __init__(
        self,
        payroll: PayrollRepository,
        attendance: AttendanceRepository,
        approvals: ApprovalRepository,
        users: UserRepository,
    ):
        self._payroll = payroll
        self._attendance = attendance
        self._approvals = approvals
        self._users = users

    def _staff_names(self, tenant_id: int) -> dict[int, str]:
        return {u.user_id: u.full_name for u in self._users.list_active_staff(tenant_id)}

    @returns_result
    def get_reconciliation_report(self, actor: Actor, run_id: int) -> ReconciliationReport:
        actor.require_role(_AUDIT_ROLES)
        details = self._payroll.get_run_details(int(run_id))
        if not details:
            raise NotFoundError("Payroll run not found")
        run = details.run
        actor.require_tenant(run.tenant_id, "payroll run")
        start, end = run.period

        disputes = self._approvals.list_disputes(tenant_id=run.tenant_id, start_date=start, end_date=end)
        overrides: dict[int, list[OverrideDetail]] = defaultdict(list)
        pending: Counter = Counter()
        for d in sorted(disputes, key=lambda d: (d.work_date, d.dispute_id)):
            if d.status == ApprovalStatus.APPROVED:
                overrides[d.staff_id].append(
                    OverrideDetail(
                        dispute_id=d.dispute_id,
                        date=d.work_date,
                        distance=d.distance_detected,
                        principal_note=d.decision_note,
                        decided_by=d.decided_by,
                        decided_at=d.decided_at,
                    )
                )
            elif d.status == ApprovalStatus.PENDING:
                pending[d.staff_id] += 1

        attempts = self._attendance.list_attempts(tenant_id=run.tenant_id, start_date=start, end_date=end)
        failed = Counter(a.staff_id for a in attempts if a.outcome == AttemptOutcome.FAILED_OUT_OF_RANGE)
        names = self._staff_names(run.tenant_id)

        rows = []
        for item in details.items:
            staff_overrides = tuple(overrides.get(item.staff_id, ()))
            rows.append(
                StaffReconciliation(
                    item=item,
                    staff_name=names.get(item.staff_id, f"Staff #{item.staff_id}"),
                    flags=len(staff_overrides),
                    overrides=staff_overrides,
                    status=(
                        ReconciliationStatus.REVIEW_REQUIRED if staff_overrides else ReconciliationStatus.PROTOCOL_VERIFIED
                    ),
                    failed_attempts=failed[item.staff_id],
                    pending_disputes=pending[item.staff_id],
                )
            )

        report = ReconciliationReport(run=run, rows=tuple(rows))
        logger.info(
            "Reconciliation for run %s: %s staff, %s require review", run.run_id, len(rows), report.review_required
        )
        return report

    @returns_result
    def get_forensic_summary(self, actor: Actor, start: date, end: date) -> ForensicSummary:
        actor.require_role(_AUDIT_ROLES)
        if end < start:
            raise ValidationError("End date must not be before start date")

        attempts = self._attendance.list_attempts(tenant_id=actor.tenant_id, start_date=start, end_date=end)
        disputes = self._approvals.list_disputes(tenant_id=actor.tenant_id, start_date=start, end_date=end)
        statuses = Counter(d.status for d in disputes)
        successes = sum(1 for a in attempts if a.outcome == AttemptOutcome.SUCCESS)

        return ForensicSummary(
            start=start,
            end=end,
            total_pings=len(attempts),
            successful_pings=successes,
            geofence_failures=len(attempts) - successes,
            manual_overrides=statuses[ApprovalStatus.APPROVED],
            dispute_rejections=statuses[ApprovalStatus.REJECTED],
            pending_disputes=statuses[ApprovalStatus.PENDING],
        )
