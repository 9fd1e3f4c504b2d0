from __future__ import annotations

from typing import Optional

from ...common.money import div_round_half_up
from ...core.enums import PayrollFlag
from ..model import PayrollItemDraft, SalaryStructure
from .base import PayrollCalculator, PayrollPolicy, StaffAttendance


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule.

    gross = base + housing + transport
    attendance = absence_rate * days_absent + late_fine * lateness, capped at gross
    net = gross - attendance - tax - pension, floored at zero
    absence_rate defaults to gross / daily_rate_divisor (half-up to the minor unit).
    """

    def compute(
        self,
        attendance: StaffAttendance,
        structure: Optional[SalaryStructure],
        policy: PayrollPolicy,
    ) -> PayrollItemDraft:
        flags: list[PayrollFlag] = []
        if structure is None:
            flags.append(PayrollFlag.MISSING_STRUCTURE)
            structure = SalaryStructure(tenant_id=0, staff_id=attendance.staff_id)

        gross = structure.gross
        if policy.absence_rate_minor is not None:
            absence_rate = int(policy.absence_rate_minor)
        else:
            absence_rate = div_round_half_up(gross, policy.daily_rate_divisor)

        days_absent = max(0, policy.days_in_month - attendance.days_present)
        attendance_deductions = absence_rate * days_absent + policy.late_fine_minor * attendance.lateness_count
        attendance_deductions = min(attendance_deductions, gross)

        net_pay = gross - attendance_deductions - structure.tax_deduction - structure.pension_deduction
        if net_pay < 0:
            net_pay = 0
            flags.append(PayrollFlag.NEGATIVE_NET_CLAMPED)

        return PayrollItemDraft(
            staff_id=attendance.staff_id,
            base_salary=structure.base_salary,
            total_allowances=structure.total_allowances,
            days_present=attendance.days_present,
            days_absent=days_absent,
            lateness_count=attendance.lateness_count,
            attendance_deductions=attendance_deductions,
            tax_deduction=structure.tax_deduction,
            pension_deduction=structure.pension_deduction,
            net_pay=net_pay,
            flags=tuple(flags),
            bank_name=structure.bank_name,
            account_number=structure.account_number,
            account_name=structure.account_name,
        )
