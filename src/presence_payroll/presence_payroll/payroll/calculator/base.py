from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..model import PayrollItemDraft, SalaryStructure


@dataclass(frozen=True)
class PayrollPolicy:
    """Run parameters plus the institution's fine schedule (minor units)."""

    days_in_month: int
    daily_rate_divisor: int
    late_fine_minor: int
    absence_rate_minor: Optional[int] = None


@dataclass(frozen=True)
class StaffAttendance:
    staff_id: int
    present_dates: frozenset[date]
    lateness_count: int

    @property
    def days_present(self) -> int:
        return len(self.present_dates)


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def compute(
        self,
        attendance: StaffAttendance,
        structure: Optional[SalaryStructure],
        policy: PayrollPolicy,
    ) -> PayrollItemDraft:
        raise NotImplementedError
