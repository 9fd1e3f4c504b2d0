from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Optional, Sequence

from ..approvals.repository import ApprovalRepository
from ..common.datetime_utils import month_bounds, now_local
from ..common.money import to_minor
from ..common.validators import optional_text, require_int_between, require_month, require_positive_int
from ..core.constants import MAX_DAYS_IN_MONTH
from ..core.enums import PAYROLL_ROLES, ApprovalStatus, PayrollRunStatus
from ..core.exceptions import DuplicateRunError, InvalidStateError, NotFoundError, ValidationError
from ..core.result import returns_result
from ..attendance.repository import AttendanceRepository
from ..institutions.service import InstitutionService
from ..notifications.notifier import LoggingNotifier, Notifier, notify_safely
from ..users.model import Actor
from ..users.repository import UserRepository
from .calculator.base import PayrollCalculator, PayrollPolicy, StaffAttendance
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import PayrollRun, PayrollRunDetails, SalaryStructure
from .repository import PayrollRepository

logger = logging.getLogger(__name__)


class PayrollService:
    """Turns a month of clock sessions and approved disputes into a payroll run."""

    def __init__(
        self,
        payroll: PayrollRepository,
        attendance: AttendanceRepository,
        approvals: ApprovalRepository,
        users: UserRepository,
        institutions: InstitutionService,
        *,
        calculator: Optional[PayrollCalculator] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._payroll = payroll
        self._attendance = attendance
        self._approvals = approvals
        self._users = users
        self._institutions = institutions
        self._calculator = calculator or StandardPayrollCalculator()
        self._notifier = notifier or LoggingNotifier()

    def _attendance_by_staff(self, tenant_id: int, start: date, end: date, cutoff) -> dict[int, StaffAttendance]:
        present: dict[int, set[date]] = defaultdict(set)
        late: dict[int, int] = defaultdict(int)

        for s in self._attendance.list_sessions(tenant_id=tenant_id, start_date=start, end_date=end):
            present[s.staff_id].add(s.work_date)
            if s.is_late(cutoff):
                late[s.staff_id] += 1

        # An approved dispute credits its day even if the override session is missing.
        approved = self._approvals.list_disputes(
            tenant_id=tenant_id, start_date=start, end_date=end, status=ApprovalStatus.APPROVED
        )
        for d in approved:
            present[d.staff_id].add(d.work_date)

        return {
            staff_id: StaffAttendance(staff_id=staff_id, present_dates=frozenset(dates), lateness_count=late[staff_id])
            for staff_id, dates in present.items()
        }

    @returns_result
    def generate_run(
        self,
        actor: Actor,
        month: int,
        year: int,
        days_in_month: int,
        daily_rate_divisor: int,
        *,
        now: Optional[datetime] = None,
    ) -> PayrollRunDetails:
        actor.require_role(PAYROLL_ROLES, "Only the bursar can generate payroll")
        month = require_month(month)
        year = require_positive_int(year, "Year")
        days_in_month = require_int_between(days_in_month, "Days in month", 1, MAX_DAYS_IN_MONTH)
        daily_rate_divisor = require_int_between(daily_rate_divisor, "Daily rate divisor", 1, MAX_DAYS_IN_MONTH)
        tenant_id = actor.tenant_id

        existing = self._payroll.find_run(tenant_id=tenant_id, month=month, year=year)
        if existing:
            raise DuplicateRunError(f"Payroll for {month:02d}/{year} already exists", data=existing)

        settings = self._institutions.settings_for(tenant_id)
        start, end = month_bounds(year, month)

        structures = {s.staff_id: s for s in self._payroll.list_salary_structures(tenant_id)}
        attendance = self._attendance_by_staff(tenant_id, start, end, settings.lateness_cutoff)
        staff_ids = set(structures) | set(attendance) | {u.user_id for u in self._users.list_active_staff(tenant_id)}

        policy = PayrollPolicy(
            days_in_month=days_in_month,
            daily_rate_divisor=daily_rate_divisor,
            late_fine_minor=settings.late_fine_minor,
            absence_rate_minor=settings.absence_rate_minor,
        )
        items = [
            self._calculator.compute(
                attendance.get(staff_id) or StaffAttendance(staff_id=staff_id, present_dates=frozenset(), lateness_count=0),
                structures.get(staff_id),
                policy,
            )
            for staff_id in sorted(staff_ids)
        ]

        run = self._payroll.create_run(
            tenant_id=tenant_id,
            month=month,
            year=year,
            generated_by=actor.staff_id,
            generated_at=now or now_local(),
            days_in_month=days_in_month,
            daily_rate_divisor=daily_rate_divisor,
            items=items,
        )
        if run is None:
            existing = self._payroll.find_run(tenant_id=tenant_id, month=month, year=year)
            raise DuplicateRunError(f"Payroll for {month:02d}/{year} already exists", data=existing)

        flagged = sum(1 for i in items if i.flags)
        logger.info(
            "PAYROLL_GENERATED tenant=%s run=%s period=%02d/%s staff=%s flagged=%s total=%s",
            tenant_id, run.run_id, month, year, len(items), flagged, run.total_payout,
        )
        return self._payroll.get_run_details(run.run_id)

    @returns_result
    def upsert_salary_structure(
        self,
        actor: Actor,
        staff_id: int,
        *,
        base_salary=None,
        housing_allowance=None,
        transport_allowance=None,
        tax_deduction=None,
        pension_deduction=None,
        bank_name: Optional[str] = None,
        account_number: Optional[str] = None,
        account_name: Optional[str] = None,
    ) -> SalaryStructure:
        actor.require_role(PAYROLL_ROLES, "Only the bursar can edit salary structures")
        staff = self._users.get_by_id(int(staff_id))
        if not staff:
            raise NotFoundError("Staff member not found")
        actor.require_tenant(staff.tenant_id, "staff member")

        account_number = optional_text(account_number) or ""
        if account_number and not account_number.isdigit():
            raise ValidationError("Account number must contain digits only")

        structure = SalaryStructure(
            tenant_id=actor.tenant_id,
            staff_id=staff.user_id,
            base_salary=to_minor(base_salary, "Base salary"),
            housing_allowance=to_minor(housing_allowance, "Housing allowance"),
            transport_allowance=to_minor(transport_allowance, "Transport allowance"),
            tax_deduction=to_minor(tax_deduction, "Tax deduction"),
            pension_deduction=to_minor(pension_deduction, "Pension deduction"),
            bank_name=optional_text(bank_name) or "",
            account_number=account_number,
            account_name=optional_text(account_name) or staff.full_name,
        )
        self._payroll.upsert_salary_structure(structure)
        logger.info("Salary structure for staff %s updated by %s", staff.user_id, actor.staff_id)
        return structure

    @returns_result
    def finalize_run(self, actor: Actor, run_id: int, *, now: Optional[datetime] = None) -> PayrollRun:
        actor.require_role(PAYROLL_ROLES, "Only the bursar can finalize payroll")
        run = self._payroll.get_run(int(run_id))
        if not run:
            raise NotFoundError("Payroll run not found")
        actor.require_tenant(run.tenant_id, "payroll run")
        if run.status != PayrollRunStatus.DRAFT:
            raise InvalidStateError("Payroll run is already finalized", data=run)
        if not self._payroll.finalize_run(run_id=run.run_id, finalized_at=now or now_local()):
            raise InvalidStateError("Payroll run is already finalized", data=self._payroll.get_run(run.run_id))

        logger.info("PAYROLL_FINALIZED tenant=%s run=%s by=%s", run.tenant_id, run.run_id, actor.staff_id)
        notify_safely(
            self._notifier,
            tenant_id=run.tenant_id,
            recipient_id=run.generated_by,
            subject="Payroll finalized",
            body=f"Payroll for {run.month:02d}/{run.year} is finalized and ready for export.",
        )
        return self._payroll.get_run(run.run_id)

    @returns_result
    def list_runs(self, actor: Actor) -> Sequence[PayrollRun]:
        actor.require_role(PAYROLL_ROLES)
        return self._payroll.list_runs(actor.tenant_id)

    @returns_result
    def get_run_details(self, actor: Actor, run_id: int) -> PayrollRunDetails:
        actor.require_role(PAYROLL_ROLES)
        details = self._payroll.get_run_details(int(run_id))
        if not details:
            raise NotFoundError("Payroll run not found")
        actor.require_tenant(details.run.tenant_id, "payroll run")
        return details
