from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import ReconciliationStatus
from ..payroll.model import PayrollItem, PayrollRun


@dataclass(frozen=True)
class OverrideDetail:
    """One approved dispute that credited a day the geofence refused."""

    dispute_id: int
    date: date
    distance: Optional[float]
    principal_note: Optional[str]
    decided_by: Optional[int]
    decided_at: Optional[datetime]


@dataclass(frozen=True)
class StaffReconciliation:
    item: PayrollItem
    staff_name: str
    flags: int
    overrides: tuple[OverrideDetail, ...]
    status: ReconciliationStatus
    failed_attempts: int = 0
    pending_disputes: int = 0


@dataclass(frozen=True)
class ReconciliationReport:
    run: PayrollRun
    rows: tuple[StaffReconciliation, ...]

    @property
    def total_payout(self) -> int:
        return self.run.total_payout

    @property
    def review_required(self) -> int:
        return sum(1 for r in self.rows if r.status == ReconciliationStatus.REVIEW_REQUIRED)

    def to_dict(self) -> dict:
        return {**vars(self), "total_payout": self.total_payout, "review_required": self.review_required}


@dataclass(frozen=True)
class ForensicSummary:
    start: date
    end: date
    total_pings: int
    successful_pings: int
    geofence_failures: int
    manual_overrides: int
    dispute_rejections: int
    pending_disputes: int

    @property
    def success_rate(self) -> float:
        """Percentage of clock-in attempts that passed the geofence."""
        if not self.total_pings:
            return 0.0
        return round(self.successful_pings * 100.0 / self.total_pings, 2)

    def to_dict(self) -> dict:
        return {**vars(self), "success_rate": self.success_rate}
