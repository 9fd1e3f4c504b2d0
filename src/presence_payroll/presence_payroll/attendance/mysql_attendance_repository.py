from __future__ import annotations

import math
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttemptOutcome, SessionSource
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceAttempt, ClockSession, SessionOpen
from .repository import AttendanceRepository

_ATTEMPT_COLUMNS = """
    attempt_id, tenant_id, staff_id, attempted_at, submitted_lat, submitted_lng,
    distance_meters, radius_meters, verified, outcome, location_unavailable
"""

_SESSION_COLUMNS = """
    session_id, tenant_id, staff_id, work_date, clock_in_time, clock_out_time, source, dispute_id
"""


def _to_attempt(r: dict) -> AttendanceAttempt:
    distance = r.get("distance_meters")
    return AttendanceAttempt(
        attempt_id=int(r["attempt_id"]),
        tenant_id=int(r["tenant_id"]),
        staff_id=int(r["staff_id"]),
        timestamp=r["attempted_at"],
        submitted_lat=float(r["submitted_lat"]) if r.get("submitted_lat") is not None else None,
        submitted_lng=float(r["submitted_lng"]) if r.get("submitted_lng") is not None else None,
        # Unavailable locations are stored as NULL distance.
        distance_meters=float(distance) if distance is not None else math.inf,
        radius_meters=float(r["radius_meters"]),
        verified=bool(r["verified"]),
        outcome=AttemptOutcome(r["outcome"]),
        location_unavailable=bool(r.get("location_unavailable")),
    )


def _to_session(r: dict) -> ClockSession:
    return ClockSession(
        session_id=int(r["session_id"]),
        tenant_id=int(r["tenant_id"]),
        staff_id=int(r["staff_id"]),
        work_date=r["work_date"],
        clock_in_time=r["clock_in_time"],
        clock_out_time=r.get("clock_out_time"),
        source=SessionSource(r["source"]),
        dispute_id=int(r["dispute_id"]) if r.get("dispute_id") is not None else None,
    )


def insert_session(cur, opening: SessionOpen) -> ClockSession:
    """Open the day's session on an already open cursor and read it back.

    uq_clock_sessions_day(tenant_id, staff_id, work_date) makes the insert a
    no-op on repeat, so the existing session is returned untouched.
    """
    cur.execute(
        """
        INSERT IGNORE INTO clock_sessions(tenant_id, staff_id, work_date, clock_in_time, source, dispute_id)
        VALUES(%s,%s,%s,%s,%s,%s)
        """,
        (
            int(opening.tenant_id),
            int(opening.staff_id),
            opening.work_date,
            opening.clock_in_time,
            opening.source.value,
            opening.dispute_id,
        ),
    )
    cur.execute(
        f"""
        SELECT {_SESSION_COLUMNS}
        FROM clock_sessions
        WHERE tenant_id=%s AND staff_id=%s AND work_date=%s
        """,
        (int(opening.tenant_id), int(opening.staff_id), opening.work_date),
    )
    return _to_session(fetchone(cur))


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Attempts --------
    def append_attempt(
        self,
        *,
        tenant_id: int,
        staff_id: int,
        timestamp: datetime,
        submitted_lat: Optional[float],
        submitted_lng: Optional[float],
        distance_meters: float,
        radius_meters: float,
        verified: bool,
        outcome: AttemptOutcome,
        location_unavailable: bool,
        open_session: bool = False,
    ) -> tuple[AttendanceAttempt, Optional[ClockSession]]:
        stored_distance = None if math.isinf(distance_meters) else round(float(distance_meters), 2)
        session = None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_attempts(
                    tenant_id, staff_id, attempted_at, submitted_lat, submitted_lng,
                    distance_meters, radius_meters, verified, outcome, location_unavailable
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(tenant_id),
                    int(staff_id),
                    timestamp,
                    submitted_lat,
                    submitted_lng,
                    stored_distance,
                    float(radius_meters),
                    int(bool(verified)),
                    outcome.value,
                    int(bool(location_unavailable)),
                ),
            )
            attempt_id = int(cur.lastrowid)
            if open_session:
                session = insert_session(
                    cur,
                    SessionOpen(
                        tenant_id=tenant_id,
                        staff_id=staff_id,
                        work_date=timestamp.date(),
                        clock_in_time=timestamp,
                        source=SessionSource.GEOFENCE,
                    ),
                )

        attempt = AttendanceAttempt(
            attempt_id=attempt_id,
            tenant_id=int(tenant_id),
            staff_id=int(staff_id),
            timestamp=timestamp,
            submitted_lat=submitted_lat,
            submitted_lng=submitted_lng,
            distance_meters=math.inf if stored_distance is None else stored_distance,
            radius_meters=float(radius_meters),
            verified=bool(verified),
            outcome=outcome,
            location_unavailable=bool(location_unavailable),
        )
        return attempt, session

    def get_attempt(self, attempt_id: int) -> Optional[AttendanceAttempt]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ATTEMPT_COLUMNS} FROM attendance_attempts WHERE attempt_id=%s", (int(attempt_id),))
            r = fetchone(cur)
            return _to_attempt(r) if r else None

    def list_attempts(
        self,
        *,
        tenant_id: int,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[AttendanceAttempt]:
        clauses = ["tenant_id=%s", "DATE(attempted_at) BETWEEN %s AND %s"]
        params: list[object] = [int(tenant_id), start_date, end_date]
        if staff_id is not None:
            clauses.append("staff_id=%s")
            params.append(int(staff_id))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ATTEMPT_COLUMNS}
                FROM attendance_attempts
                WHERE {where}
                ORDER BY attempted_at ASC, attempt_id ASC
                """,
                tuple(params),
            )
            return [_to_attempt(r) for r in fetchall(cur)]

    # -------- Clock sessions --------
    def get_session(self, *, tenant_id: int, staff_id: int, work_date: date) -> Optional[ClockSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM clock_sessions
                WHERE tenant_id=%s AND staff_id=%s AND work_date=%s
                """,
                (int(tenant_id), int(staff_id), work_date),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def close_session(self, *, session_id: int, clock_out_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE clock_sessions
                SET clock_out_time=%s
                WHERE session_id=%s AND clock_out_time IS NULL
                """,
                (clock_out_time, int(session_id)),
            )
            return cur.rowcount > 0

    def list_sessions(
        self,
        *,
        tenant_id: int,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[ClockSession]:
        clauses = ["tenant_id=%s", "work_date BETWEEN %s AND %s"]
        params: list[object] = [int(tenant_id), start_date, end_date]
        if staff_id is not None:
            clauses.append("staff_id=%s")
            params.append(int(staff_id))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM clock_sessions
                WHERE {where}
                ORDER BY work_date ASC, staff_id ASC
                """,
                tuple(params),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def get_recent_sessions(self, *, tenant_id: int, staff_id: int, limit: int) -> Sequence[ClockSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM clock_sessions
                WHERE tenant_id=%s AND staff_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (int(tenant_id), int(staff_id), int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]
