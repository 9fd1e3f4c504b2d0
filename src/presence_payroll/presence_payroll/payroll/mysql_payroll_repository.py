from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import PayrollFlag, PayrollRunStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, split_flags
from .model import PayrollItem, PayrollItemDraft, PayrollRun, PayrollRunDetails, SalaryStructure
from .repository import PayrollRepository

_RUN_COLUMNS = """
    run_id, tenant_id, month, year, status, total_payout, generated_at, generated_by,
    days_in_month, daily_rate_divisor, finalized_at
"""

_STRUCTURE_COLUMNS = """
    tenant_id, staff_id, base_salary, housing_allowance, transport_allowance,
    tax_deduction, pension_deduction, bank_name, account_number, account_name
"""


def _to_run(r: dict) -> PayrollRun:
    return PayrollRun(
        run_id=int(r["run_id"]),
        tenant_id=int(r["tenant_id"]),
        month=int(r["month"]),
        year=int(r["year"]),
        status=PayrollRunStatus(r["status"]),
        total_payout=int(r["total_payout"]),
        generated_at=r["generated_at"],
        generated_by=int(r["generated_by"]),
        days_in_month=int(r["days_in_month"]),
        daily_rate_divisor=int(r["daily_rate_divisor"]),
        finalized_at=r.get("finalized_at"),
    )


def _to_item(r: dict) -> PayrollItem:
    return PayrollItem(
        item_id=int(r["item_id"]),
        run_id=int(r["run_id"]),
        staff_id=int(r["staff_id"]),
        base_salary=int(r["base_salary"]),
        total_allowances=int(r["total_allowances"]),
        days_present=int(r["days_present"]),
        days_absent=int(r["days_absent"]),
        lateness_count=int(r["lateness_count"]),
        attendance_deductions=int(r["attendance_deductions"]),
        tax_deduction=int(r["tax_deduction"]),
        pension_deduction=int(r["pension_deduction"]),
        net_pay=int(r["net_pay"]),
        flags=tuple(PayrollFlag(f) for f in split_flags(r.get("flags"))),
        bank_name=r.get("bank_name") or "",
        account_number=r.get("account_number") or "",
        account_name=r.get("account_name") or "",
    )


def _to_structure(r: dict) -> SalaryStructure:
    return SalaryStructure(
        tenant_id=int(r["tenant_id"]),
        staff_id=int(r["staff_id"]),
        base_salary=int(r["base_salary"]),
        housing_allowance=int(r["housing_allowance"]),
        transport_allowance=int(r["transport_allowance"]),
        tax_deduction=int(r["tax_deduction"]),
        pension_deduction=int(r["pension_deduction"]),
        bank_name=r.get("bank_name") or "",
        account_number=r.get("account_number") or "",
        account_name=r.get("account_name") or "",
    )


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Salary structures --------
    def get_salary_structure(self, *, tenant_id: int, staff_id: int) -> Optional[SalaryStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STRUCTURE_COLUMNS} FROM salary_structures WHERE tenant_id=%s AND staff_id=%s",
                (int(tenant_id), int(staff_id)),
            )
            r = fetchone(cur)
            return _to_structure(r) if r else None

    def list_salary_structures(self, tenant_id: int) -> Sequence[SalaryStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STRUCTURE_COLUMNS} FROM salary_structures WHERE tenant_id=%s ORDER BY staff_id",
                (int(tenant_id),),
            )
            return [_to_structure(r) for r in fetchall(cur)]

    def upsert_salary_structure(self, structure: SalaryStructure) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO salary_structures(
                    tenant_id, staff_id, base_salary, housing_allowance, transport_allowance,
                    tax_deduction, pension_deduction, bank_name, account_number, account_name
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    base_salary=VALUES(base_salary),
                    housing_allowance=VALUES(housing_allowance),
                    transport_allowance=VALUES(transport_allowance),
                    tax_deduction=VALUES(tax_deduction),
                    pension_deduction=VALUES(pension_deduction),
                    bank_name=VALUES(bank_name),
                    account_number=VALUES(account_number),
                    account_name=VALUES(account_name)
                """,
                (
                    int(structure.tenant_id),
                    int(structure.staff_id),
                    int(structure.base_salary),
                    int(structure.housing_allowance),
                    int(structure.transport_allowance),
                    int(structure.tax_deduction),
                    int(structure.pension_deduction),
                    structure.bank_name,
                    structure.account_number,
                    structure.account_name,
                ),
            )

    # -------- Runs --------
    def find_run(self, *, tenant_id: int, month: int, year: int) -> Optional[PayrollRun]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RUN_COLUMNS} FROM payroll_runs WHERE tenant_id=%s AND month=%s AND year=%s",
                (int(tenant_id), int(month), int(year)),
            )
            r = fetchone(cur)
            return _to_run(r) if r else None

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
        total = sum(int(i.net_pay) for i in items)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO payroll_runs(
                        tenant_id, month, year, status, total_payout, generated_at, generated_by,
                        days_in_month, daily_rate_divisor
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(tenant_id),
                        int(month),
                        int(year),
                        PayrollRunStatus.DRAFT.value,
                        total,
                        generated_at,
                        int(generated_by),
                        int(days_in_month),
                        int(daily_rate_divisor),
                    ),
                )
                run_id = int(cur.lastrowid)
                if items:
                    cur.executemany(
                        """
                        INSERT INTO payroll_items(
                            run_id, staff_id, base_salary, total_allowances, days_present, days_absent,
                            lateness_count, attendance_deductions, tax_deduction, pension_deduction,
                            net_pay, flags, bank_name, account_number, account_name
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        [
                            (
                                run_id,
                                int(i.staff_id),
                                int(i.base_salary),
                                int(i.total_allowances),
                                int(i.days_present),
                                int(i.days_absent),
                                int(i.lateness_count),
                                int(i.attendance_deductions),
                                int(i.tax_deduction),
                                int(i.pension_deduction),
                                int(i.net_pay),
                                ",".join(f.value for f in i.flags),
                                i.bank_name,
                                i.account_number,
                                i.account_name,
                            )
                            for i in items
                        ],
                    )
        except mysql.connector.IntegrityError:
            # uq_payroll_runs_period: another generation won the race
            return None
        return self.get_run(run_id)

    def get_run(self, run_id: int) -> Optional[PayrollRun]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RUN_COLUMNS} FROM payroll_runs WHERE run_id=%s", (int(run_id),))
            r = fetchone(cur)
            return _to_run(r) if r else None

    def get_run_details(self, run_id: int) -> Optional[PayrollRunDetails]:
        with db_cursor(self._conn_factory, snapshot=True) as (_, cur):
            cur.execute(f"SELECT {_RUN_COLUMNS} FROM payroll_runs WHERE run_id=%s", (int(run_id),))
            r = fetchone(cur)
            if not r:
                return None
            cur.execute(
                """
                SELECT item_id, run_id, staff_id, base_salary, total_allowances, days_present, days_absent,
                       lateness_count, attendance_deductions, tax_deduction, pension_deduction, net_pay, flags,
                       bank_name, account_number, account_name
                FROM payroll_items
                WHERE run_id=%s
                ORDER BY staff_id
                """,
                (int(run_id),),
            )
            items = tuple(_to_item(i) for i in fetchall(cur))
            return PayrollRunDetails(run=_to_run(r), items=items)

    def list_runs(self, tenant_id: int) -> Sequence[PayrollRun]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RUN_COLUMNS} FROM payroll_runs WHERE tenant_id=%s ORDER BY year DESC, month DESC",
                (int(tenant_id),),
            )
            return [_to_run(r) for r in fetchall(cur)]

    def finalize_run(self, *, run_id: int, finalized_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE payroll_runs SET status=%s, finalized_at=%s WHERE run_id=%s AND status=%s",
                (PayrollRunStatus.FINALIZED.value, finalized_at, int(run_id), PayrollRunStatus.DRAFT.value),
            )
            return cur.rowcount == 1
