from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import month_bounds
from ..core.enums import PayrollFlag, PayrollRunStatus


@dataclass(frozen=True)
class SalaryStructure:
    """Bursar-owned pay terms for one staff member. Amounts in minor units."""

    tenant_id: int
    staff_id: int
    base_salary: int = 0
    housing_allowance: int = 0
    transport_allowance: int = 0
    tax_deduction: int = 0
    pension_deduction: int = 0
    bank_name: str = ""
    account_number: str = ""
    account_name: str = ""

    @property
    def total_allowances(self) -> int:
        return self.housing_allowance + self.transport_allowance

    @property
    def gross(self) -> int:
        return self.base_salary + self.total_allowances


@dataclass(frozen=True)
class PayrollRun:
    run_id: int
    tenant_id: int
    month: int
    year: int
    status: PayrollRunStatus
    total_payout: int
    generated_at: datetime
    generated_by: int
    days_in_month: int
    daily_rate_divisor: int
    finalized_at: Optional[datetime] = None

    @property
    def period(self) -> tuple[date, date]:
        return month_bounds(self.year, self.month)

    @property
    def batch_id(self) -> str:
        return f"{self.year}{self.month:02d}-{self.run_id}"

    def to_dict(self) -> dict:
        return {**vars(self), "batch_id": self.batch_id}


@dataclass(frozen=True)
class PayrollItemDraft:
    """Computed pay for one staff member, before it is persisted."""

    staff_id: int
    base_salary: int
    total_allowances: int
    days_present: int
    days_absent: int
    lateness_count: int
    attendance_deductions: int
    tax_deduction: int
    pension_deduction: int
    net_pay: int
    flags: tuple[PayrollFlag, ...] = ()
    # Payee details as they stood when the run was generated.
    bank_name: str = ""
    account_number: str = ""
    account_name: str = ""


@dataclass(frozen=True)
class PayrollItem:
    item_id: int
    run_id: int
    staff_id: int
    base_salary: int
    total_allowances: int
    days_present: int
    days_absent: int
    lateness_count: int
    attendance_deductions: int
    tax_deduction: int
    pension_deduction: int
    net_pay: int
    flags: tuple[PayrollFlag, ...] = ()
    bank_name: str = ""
    account_number: str = ""
    account_name: str = ""


@dataclass(frozen=True)
class PayrollRunDetails:
    run: PayrollRun
    items: tuple[PayrollItem, ...] = field(default_factory=tuple)
