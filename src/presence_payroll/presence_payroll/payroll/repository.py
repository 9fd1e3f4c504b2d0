from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import PayrollItemDraft, PayrollRun, PayrollRunDetails, SalaryStructure


class PayrollRepository(Protocol):
    # Salary structures (latest wins)
    def get_salary_structure(self, *, tenant_id: int, staff_id: int) -> Optional[SalaryStructure]:
        raise NotImplementedError

    def list_salary_structures(self, tenant_id: int) -> Sequence[SalaryStructure]:
        """All structures of a tenant, read in one statement."""

        raise NotImplementedError

    def upsert_salary_structure(self, structure: SalaryStructure) -> None:
        raise NotImplementedError

    # Runs
    def find_run(self, *, tenant_id: int, month: int, year: int) -> Optional[PayrollRun]:
        raise NotImplementedError

    def create_run(
        self,
        *,
        tenant_id: int,
        month: int,
        year: int,
        generated_by: int,
        generated_at: datetime,
        days_in_month: int,
        daily_rate_divisor: int,
        items: Sequence[PayrollItemDraft],
    ) -> Optional[PayrollRun]:
        """Persist run and items atomically.

        Returns None if (tenant, month, year) already has a run.
        """

        raise NotImplementedError

    def get_run(self, run_id: int) -> Optional[PayrollRun]:
        raise NotImplementedError

    def get_run_details(self, run_id: int) -> Optional[PayrollRunDetails]:
        """Run plus all of its items, read at a single consistent snapshot."""

        raise NotImplementedError

    def list_runs(self, tenant_id: int) -> Sequence[PayrollRun]:
        raise NotImplementedError

    def finalize_run(self, *, run_id: int, finalized_at: datetime) -> bool:
        """DRAFT -> FINALIZED compare-and-set."""

        raise NotImplementedError
