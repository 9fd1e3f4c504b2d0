from __future__ import annotations

from dataclasses import dataclass

from ..common.money import format_minor
from ..core.enums import LedgerStatus


@dataclass(frozen=True)
class LedgerEntry:
    payroll_item_id: int
    staff_id: int
    bank_name: str
    account_no: str
    account_name: str
    amount: int
    narration: str
    status: LedgerStatus = LedgerStatus.RECONCILED

    def to_row(self) -> dict:
        """Bank upload row. Account numbers stay text to keep leading zeros."""
        return {
            "Account Name": self.account_name,
            "Bank Name": self.bank_name,
            "Account Number": self.account_no,
            "Amount": format_minor(self.amount),
            "Narration": self.narration,
        }


@dataclass(frozen=True)
class LedgerBatch:
    batch_id: str
    run_id: int
    entries: tuple[LedgerEntry, ...]
    total: int
