from __future__ import annotations

import io
import logging

import pandas as pd

from ..approvals.repository import ApprovalRepository
from ..core.enums import PAYROLL_ROLES, ApprovalStatus, PayrollRunStatus
from ..core.exceptions import InvalidStateError, NotFoundError, UnresolvedDisputesError
from ..core.result import returns_result
from ..payroll.repository import PayrollRepository
from ..users.model import Actor
from .model import LedgerBatch, LedgerEntry

logger = logging.getLogger(__name__)

LEDGER_COLUMNS = ["Account Name", "Bank Name", "Account Number", "Amount", "Narration"]


class LedgerService:
    """Bank-ready disbursement batches for finalized payroll runs."""

    def __init__(self, payroll: PayrollRepository, approvals: ApprovalRepository):
        self._payroll = payroll
        self._approvals = approvals

    def _build_batch(self, actor: Actor, run_id: int) -> LedgerBatch:
        actor.require_role(PAYROLL_ROLES, "Only the bursar can export the ledger")
        details = self._payroll.get_run_details(int(run_id))
        if not details:
            raise NotFoundError("Payroll run not found")
        run = details.run
        actor.require_tenant(run.tenant_id, "payroll run")
        if run.status != PayrollRunStatus.FINALIZED:
            raise InvalidStateError("Payroll run must be finalized before export")

        start, end = run.period
        included = {i.staff_id for i in details.items}
        blocking = sorted(
            d.dispute_id
            for d in self._approvals.list_disputes(
                tenant_id=run.tenant_id, start_date=start, end_date=end, status=ApprovalStatus.PENDING
            )
            if d.staff_id in included
        )
        if blocking:
            raise UnresolvedDisputesError(
                f"{len(blocking)} attendance dispute(s) in this period are still pending", data=blocking
            )

        # Bank details are the snapshot taken at generation, not the current salary structure.
        narration = f"SALARY_PAYROLL_{run.batch_id}"
        entries = []
        for item in sorted(details.items, key=lambda i: i.staff_id):
            if not item.account_number:
                logger.warning(
                    "LEDGER_UNROUTABLE batch=%s staff=%s amount=%s flags=%s",
                    run.batch_id, item.staff_id, item.net_pay, ",".join(f.value for f in item.flags),
                )
            entries.append(
                LedgerEntry(
                    payroll_item_id=item.item_id,
                    staff_id=item.staff_id,
                    bank_name=item.bank_name,
                    account_no=item.account_number,
                    account_name=item.account_name,
                    amount=item.net_pay,
                    narration=narration,
                )
            )

        total = sum(e.amount for e in entries)
        if total != run.total_payout:
            raise InvalidStateError(f"Ledger total {total} does not match run total {run.total_payout}")
        return LedgerBatch(batch_id=run.batch_id, run_id=run.run_id, entries=tuple(entries), total=total)

    def _frame(self, batch: LedgerBatch) -> pd.DataFrame:
        return pd.DataFrame([e.to_row() for e in batch.entries], columns=LEDGER_COLUMNS, dtype=str)

    @returns_result
    def get_reconciled_ledger(self, actor: Actor, run_id: int) -> LedgerBatch:
        return self._build_batch(actor, run_id)

    @returns_result
    def export_csv(self, actor: Actor, run_id: int) -> bytes:
        batch = self._build_batch(actor, run_id)
        out = self._frame(batch).to_csv(index=False, lineterminator="\n")
        logger.info("LEDGER_EXPORT csv batch=%s entries=%s by=%s", batch.batch_id, len(batch.entries), actor.staff_id)
        return out.encode("utf-8")

    @returns_result
    def export_xlsx(self, actor: Actor, run_id: int) -> bytes:
        batch = self._build_batch(actor, run_id)
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            self._frame(batch).to_excel(writer, index=False, sheet_name="Ledger")
        logger.info("LEDGER_EXPORT xlsx batch=%s entries=%s by=%s", batch.batch_id, len(batch.entries), actor.staff_id)
        return output.getvalue()
