from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector

from ..attendance.model import SessionOpen
from ..attendance.mysql_attendance_repository import insert_session
from ..core.enums import ApprovalKind, ApprovalStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ApprovalItem, Dispute
from .repository import ApprovalRepository

_DISPUTE_SELECT = """
    SELECT a.item_id, a.tenant_id, d.attempt_id, d.staff_id, d.work_date, a.reason,
           d.proof_url, d.distance_detected, a.status, a.created_at,
           a.decision_note, a.decided_by, a.decided_at
    FROM approval_items a
    JOIN attendance_disputes d ON d.item_id = a.item_id
"""


def _to_item(r: dict) -> ApprovalItem:
    return ApprovalItem(
        item_id=int(r["item_id"]),
        tenant_id=int(r["tenant_id"]),
        kind=ApprovalKind(r["kind"]),
        submitted_by=int(r["submitted_by"]),
        title=r["title"],
        reason=r["reason"],
        status=ApprovalStatus(r["status"]),
        created_at=r["created_at"],
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        decision_note=r.get("decision_note"),
    )


def _to_dispute(r: dict) -> Dispute:
    return Dispute(
        dispute_id=int(r["item_id"]),
        tenant_id=int(r["tenant_id"]),
        attempt_id=int(r["attempt_id"]),
        staff_id=int(r["staff_id"]),
        work_date=r["work_date"],
        reason=r["reason"],
        proof_url=r.get("proof_url"),
        distance_detected=float(r["distance_detected"]) if r.get("distance_detected") is not None else None,
        status=ApprovalStatus(r["status"]),
        created_at=r["created_at"],
        decision_note=r.get("decision_note"),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
    )


class MySQLApprovalRepository(ApprovalRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Generic queue --------
    def create_item(
        self,
        *,
        tenant_id: int,
        kind: ApprovalKind,
        submitted_by: int,
        title: str,
        reason: str,
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO approval_items(tenant_id, kind, submitted_by, title, reason, status, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(tenant_id), kind.value, int(submitted_by), title, reason, ApprovalStatus.PENDING.value, created_at),
            )
            return int(cur.lastrowid)

    def get_item(self, item_id: int) -> Optional[ApprovalItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT item_id, tenant_id, kind, submitted_by, title, reason, status,
                       created_at, decided_by, decided_at, decision_note
                FROM approval_items
                WHERE item_id=%s
                """,
                (int(item_id),),
            )
            r = fetchone(cur)
            return _to_item(r) if r else None

    def decide(
        self,
        *,
        item_id: int,
        status: ApprovalStatus,
        decided_by: int,
        decided_at: datetime,
        decision_note: Optional[str],
        session: Optional[SessionOpen] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE approval_items
                SET status=%s, decided_by=%s, decided_at=%s, decision_note=%s
                WHERE item_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(decided_by),
                    decided_at,
                    decision_note,
                    int(item_id),
                    ApprovalStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                return False
            if session is not None:
                insert_session(cur, session)
            return True

    def list_items(
        self,
        *,
        tenant_id: int,
        status: Optional[ApprovalStatus] = None,
        kind: Optional[ApprovalKind] = None,
        submitted_by: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[ApprovalItem]:
        clauses = ["tenant_id=%s"]
        params: list[object] = [int(tenant_id)]

        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if kind is not None:
            clauses.append("kind=%s")
            params.append(kind.value)
        if submitted_by is not None:
            clauses.append("submitted_by=%s")
            params.append(int(submitted_by))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT item_id, tenant_id, kind, submitted_by, title, reason, status,
                       created_at, decided_by, decided_at, decision_note
                FROM approval_items
                WHERE {where}
                ORDER BY created_at DESC, item_id DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [_to_item(r) for r in fetchall(cur)]

    # -------- Attendance disputes --------
    def create_dispute(
        self,
        *,
        tenant_id: int,
        attempt_id: int,
        staff_id: int,
        work_date: date,
        reason: str,
        proof_url: Optional[str],
        distance_detected: Optional[float],
        created_at: datetime,
    ) -> Optional[int]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO approval_items(tenant_id, kind, submitted_by, title, reason, status, created_at)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(tenant_id),
                        ApprovalKind.ATTENDANCE_DISPUTE.value,
                        int(staff_id),
                        f"Attendance dispute {work_date.isoformat()}",
                        reason,
                        ApprovalStatus.PENDING.value,
                        created_at,
                    ),
                )
                item_id = int(cur.lastrowid)
                # uq_attendance_disputes_attempt rejects a second dispute for the same attempt.
                cur.execute(
                    """
                    INSERT INTO attendance_disputes(item_id, tenant_id, attempt_id, staff_id, work_date, proof_url, distance_detected)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (item_id, int(tenant_id), int(attempt_id), int(staff_id), work_date, proof_url, distance_detected),
                )
                return item_id
        except mysql.connector.IntegrityError:
            return None

    def get_dispute(self, dispute_id: int) -> Optional[Dispute]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_DISPUTE_SELECT + " WHERE a.item_id=%s", (int(dispute_id),))
            r = fetchone(cur)
            return _to_dispute(r) if r else None

    def get_dispute_by_attempt(self, attempt_id: int) -> Optional[Dispute]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_DISPUTE_SELECT + " WHERE d.attempt_id=%s", (int(attempt_id),))
            r = fetchone(cur)
            return _to_dispute(r) if r else None

    def list_disputes(
        self,
        *,
        tenant_id: int,
        start_date: date,
        end_date: date,
        status: Optional[ApprovalStatus] = None,
        staff_id: Optional[int] = None,
    ) -> Sequence[Dispute]:
        clauses = ["a.tenant_id=%s", "d.work_date BETWEEN %s AND %s"]
        params: list[object] = [int(tenant_id), start_date, end_date]
        if status is not None:
            clauses.append("a.status=%s")
            params.append(status.value)
        if staff_id is not None:
            clauses.append("d.staff_id=%s")
            params.append(int(staff_id))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _DISPUTE_SELECT + f" WHERE {where} ORDER BY d.work_date ASC, a.item_id ASC",
                tuple(params),
            )
            return [_to_dispute(r) for r in fetchall(cur)]
