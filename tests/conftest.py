from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.presence_payroll.presence_payroll.approvals.model import ApprovalItem, Dispute
from src.presence_payroll.presence_payroll.attendance.model import AttendanceAttempt, ClockSession, SessionOpen
from src.presence_payroll.presence_payroll.container import Container, wire_services
from src.presence_payroll.presence_payroll.core.constants import EARTH_RADIUS_METERS
from src.presence_payroll.presence_payroll.core.enums import ApprovalKind, ApprovalStatus, PayrollRunStatus, Role, SessionSource
from src.presence_payroll.presence_payroll.geofence.model import GeoPoint
from src.presence_payroll.presence_payroll.institutions.model import InstitutionSettings
from src.presence_payroll.presence_payroll.payroll.model import (
    PayrollItem,
    PayrollRun,
    PayrollRunDetails,
    SalaryStructure,
)
from src.presence_payroll.presence_payroll.users.model import Actor, User

TENANT_ID = 1
SCHOOL_LAT, SCHOOL_LNG = 6.5244, 3.3792

ADMIN_ID, PRINCIPAL_ID, BURSAR_ID = 1, 2, 3
STAFF_ID, OTHER_STAFF_ID = 10, 11


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 10, 7, 55, 0)


class InMemoryUsers:
    def __init__(self, users=()):
        self.users: dict[int, User] = {u.user_id: u for u in users}

    def add(self, user: User) -> User:
        self.users[user.user_id] = user
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    def list_active_staff(self, tenant_id: int):
        return sorted(
            (u for u in self.users.values() if u.tenant_id == tenant_id and u.is_active),
            key=lambda u: u.user_id,
        )


class InMemoryInstitutions:
    def __init__(self):
        self.settings: dict[int, InstitutionSettings] = {}

    def get_settings(self, tenant_id: int) -> Optional[InstitutionSettings]:
        return self.settings.get(tenant_id)

    def save_settings(self, settings: InstitutionSettings) -> None:
        self.settings[settings.tenant_id] = settings


class InMemoryAttendance:
    def __init__(self):
        self.attempts: dict[int, AttendanceAttempt] = {}
        self.sessions: dict[tuple[int, int, date], ClockSession] = {}
        self._attempt_id = 0
        self._session_id = 0

    @contextmanager
    def transaction(self):
        """Restore attempts and sessions if the block raises, like a rollback."""
        saved = (dict(self.attempts), dict(self.sessions), self._attempt_id, self._session_id)
        try:
            yield
        except Exception:
            self.attempts, self.sessions, self._attempt_id, self._session_id = saved
            raise

    def append_attempt(self, *, open_session=False, **fields):
        with self.transaction():
            self._attempt_id += 1
            attempt = AttendanceAttempt(attempt_id=self._attempt_id, **fields)
            self.attempts[attempt.attempt_id] = attempt
            session = None
            if open_session:
                session = self.insert_session(
                    SessionOpen(
                        tenant_id=attempt.tenant_id,
                        staff_id=attempt.staff_id,
                        work_date=attempt.work_date,
                        clock_in_time=attempt.timestamp,
                        source=SessionSource.GEOFENCE,
                    )
                )
        return attempt, session

    def get_attempt(self, attempt_id: int) -> Optional[AttendanceAttempt]:
        return self.attempts.get(attempt_id)

    def list_attempts(self, *, tenant_id, start_date, end_date, staff_id=None):
        return [
            a
            for a in self.attempts.values()
            if a.tenant_id == tenant_id
            and start_date <= a.work_date <= end_date
            and (staff_id is None or a.staff_id == staff_id)
        ]

    def get_session(self, *, tenant_id, staff_id, work_date) -> Optional[ClockSession]:
        return self.sessions.get((tenant_id, staff_id, work_date))

    def insert_session(self, opening: SessionOpen) -> ClockSession:
        key = (opening.tenant_id, opening.staff_id, opening.work_date)
        if key not in self.sessions:
            self._session_id += 1
            self.sessions[key] = ClockSession(
                session_id=self._session_id,
                tenant_id=opening.tenant_id,
                staff_id=opening.staff_id,
                work_date=opening.work_date,
                clock_in_time=opening.clock_in_time,
                clock_out_time=None,
                source=opening.source,
                dispute_id=opening.dispute_id,
            )
        return self.sessions[key]

    def close_session(self, *, session_id, clock_out_time) -> bool:
        for key, s in self.sessions.items():
            if s.session_id == session_id and s.clock_out_time is None:
                self.sessions[key] = replace(s, clock_out_time=clock_out_time)
                return True
        return False

    def list_sessions(self, *, tenant_id, start_date, end_date, staff_id=None):
        return [
            s
            for s in self.sessions.values()
            if s.tenant_id == tenant_id
            and start_date <= s.work_date <= end_date
            and (staff_id is None or s.staff_id == staff_id)
        ]

    def get_recent_sessions(self, *, tenant_id, staff_id, limit):
        mine = [s for s in self.sessions.values() if s.tenant_id == tenant_id and s.staff_id == staff_id]
        mine.sort(key=lambda s: s.clock_in_time, reverse=True)
        return mine[:limit]


class InMemoryApprovals:
    def __init__(self, attendance: InMemoryAttendance):
        self.attendance = attendance
        self.items: dict[int, ApprovalItem] = {}
        self.dispute_rows: dict[int, dict] = {}
        self._id = 0

    def create_item(self, *, tenant_id, kind, submitted_by, title, reason, created_at) -> int:
        self._id += 1
        self.items[self._id] = ApprovalItem(
            item_id=self._id,
            tenant_id=tenant_id,
            kind=kind,
            submitted_by=submitted_by,
            title=title,
            reason=reason,
            status=ApprovalStatus.PENDING,
            created_at=created_at,
        )
        return self._id

    def get_item(self, item_id: int) -> Optional[ApprovalItem]:
        return self.items.get(item_id)

    def decide(self, *, item_id, status, decided_by, decided_at, decision_note, session=None) -> bool:
        item = self.items.get(item_id)
        if not item or item.status != ApprovalStatus.PENDING:
            return False
        with self.attendance.transaction():
            self.items[item_id] = replace(
                item, status=status, decided_by=decided_by, decided_at=decided_at, decision_note=decision_note
            )
            try:
                if session is not None:
                    self.attendance.insert_session(session)
            except Exception:
                self.items[item_id] = item
                raise
        return True

    def list_items(self, *, tenant_id, status=None, kind=None, submitted_by=None, limit=200):
        rows = [
            i
            for i in self.items.values()
            if i.tenant_id == tenant_id
            and (status is None or i.status == status)
            and (kind is None or i.kind == kind)
            and (submitted_by is None or i.submitted_by == submitted_by)
        ]
        rows.sort(key=lambda i: (i.created_at, i.item_id))
        return rows[:limit]

    def create_dispute(
        self, *, tenant_id, attempt_id, staff_id, work_date, reason, proof_url, distance_detected, created_at
    ) -> Optional[int]:
        if any(r["attempt_id"] == attempt_id for r in self.dispute_rows.values()):
            return None
        item_id = self.create_item(
            tenant_id=tenant_id,
            kind=ApprovalKind.ATTENDANCE_DISPUTE,
            submitted_by=staff_id,
            title=f"Attendance dispute {work_date.isoformat()}",
            reason=reason,
            created_at=created_at,
        )
        self.dispute_rows[item_id] = dict(
            attempt_id=attempt_id,
            staff_id=staff_id,
            work_date=work_date,
            proof_url=proof_url,
            distance_detected=distance_detected,
        )
        return item_id

    def _join(self, item_id: int) -> Dispute:
        item, row = self.items[item_id], self.dispute_rows[item_id]
        return Dispute(
            dispute_id=item.item_id,
            tenant_id=item.tenant_id,
            attempt_id=row["attempt_id"],
            staff_id=row["staff_id"],
            work_date=row["work_date"],
            reason=item.reason,
            proof_url=row["proof_url"],
            distance_detected=row["distance_detected"],
            status=item.status,
            created_at=item.created_at,
            decision_note=item.decision_note,
            decided_by=item.decided_by,
            decided_at=item.decided_at,
        )

    def get_dispute(self, dispute_id: int) -> Optional[Dispute]:
        return self._join(dispute_id) if dispute_id in self.dispute_rows else None

    def get_dispute_by_attempt(self, attempt_id: int) -> Optional[Dispute]:
        for item_id, row in self.dispute_rows.items():
            if row["attempt_id"] == attempt_id:
                return self._join(item_id)
        return None

    def list_disputes(self, *, tenant_id, start_date, end_date, status=None, staff_id=None):
        out = [self._join(item_id) for item_id in sorted(self.dispute_rows)]
        return [
            d
            for d in out
            if d.tenant_id == tenant_id
            and start_date <= d.work_date <= end_date
            and (status is None or d.status == status)
            and (staff_id is None or d.staff_id == staff_id)
        ]


class InMemoryPayroll:
    def __init__(self):
        self.structures: dict[tuple[int, int], SalaryStructure] = {}
        self.runs: dict[int, PayrollRun] = {}
        self.items: dict[int, list[PayrollItem]] = {}
        self._run_id = 0
        self._item_id = 0

    def get_salary_structure(self, *, tenant_id, staff_id):
        return self.structures.get((tenant_id, staff_id))

    def list_salary_structures(self, tenant_id):
        return [s for (t, _), s in sorted(self.structures.items()) if t == tenant_id]

    def upsert_salary_structure(self, structure: SalaryStructure) -> None:
        self.structures[(structure.tenant_id, structure.staff_id)] = structure

    def find_run(self, *, tenant_id, month, year):
        return next(
            (r for r in self.runs.values() if (r.tenant_id, r.month, r.year) == (tenant_id, month, year)),
            None,
        )

    def create_run(self, *, tenant_id, month, year, generated_by, generated_at, days_in_month, daily_rate_divisor, items):
        if self.find_run(tenant_id=tenant_id, month=month, year=year):
            return None
        self._run_id += 1
        run = PayrollRun(
            run_id=self._run_id,
            tenant_id=tenant_id,
            month=month,
            year=year,
            status=PayrollRunStatus.DRAFT,
            total_payout=sum(i.net_pay for i in items),
            generated_at=generated_at,
            generated_by=generated_by,
            days_in_month=days_in_month,
            daily_rate_divisor=daily_rate_divisor,
        )
        stored = []
        for draft in items:
            self._item_id += 1
            stored.append(PayrollItem(item_id=self._item_id, run_id=run.run_id, **draft.__dict__))
        self.runs[run.run_id] = run
        self.items[run.run_id] = stored
        return run

    def get_run(self, run_id):
        return self.runs.get(run_id)

    def get_run_details(self, run_id):
        run = self.runs.get(run_id)
        if not run:
            return None
        return PayrollRunDetails(run=run, items=tuple(sorted(self.items[run_id], key=lambda i: i.staff_id)))

    def list_runs(self, tenant_id):
        return sorted((r for r in self.runs.values() if r.tenant_id == tenant_id), key=lambda r: (r.year, r.month), reverse=True)

    def finalize_run(self, *, run_id, finalized_at) -> bool:
        run = self.runs.get(run_id)
        if not run or run.status != PayrollRunStatus.DRAFT:
            return False
        self.runs[run_id] = replace(run, status=PayrollRunStatus.FINALIZED, finalized_at=finalized_at)
        return True


class RecordingNotifier:
    def __init__(self):
        self.sent: list[dict] = []

    def send(self, *, tenant_id, recipient_id, subject, body) -> None:
        self.sent.append(dict(tenant_id=tenant_id, recipient_id=recipient_id, subject=subject, body=body))


@dataclass
class World:
    """In-memory repositories wired into the real services."""

    users: InMemoryUsers
    institutions: InMemoryInstitutions
    attendance: InMemoryAttendance
    approvals: InMemoryApprovals
    payroll: InMemoryPayroll
    notifier: object
    container: Container

    def actor(self, user_id: int) -> Actor:
        user = self.users.get_by_id(user_id)
        return Actor(staff_id=user.user_id, tenant_id=user.tenant_id, role=user.role)

    def add_user(self, user_id: int, role: Role = Role.STAFF, *, tenant_id: int = TENANT_ID, password: str = "pw") -> User:
        return self.users.add(
            User(
                user_id=user_id,
                tenant_id=tenant_id,
                full_name=f"User {user_id}",
                username=f"user{user_id}",
                password_hash=generate_password_hash(password),
                role=role,
            )
        )

    def point_north(self, meters: float) -> GeoPoint:
        """A position `meters` due north of the school gate."""
        return GeoPoint(lat=SCHOOL_LAT + math.degrees(meters / EARTH_RADIUS_METERS), lng=SCHOOL_LNG)

    def set_structure(self, staff_id: int, *, base=0, housing=0, transport=0, tax=0, pension=0, account="0123456789"):
        self.payroll.upsert_salary_structure(
            SalaryStructure(
                tenant_id=TENANT_ID,
                staff_id=staff_id,
                base_salary=base,
                housing_allowance=housing,
                transport_allowance=transport,
                tax_deduction=tax,
                pension_deduction=pension,
                bank_name="First Bank",
                account_number=account,
                account_name=f"User {staff_id}",
            )
        )


def build_world(notifier=None) -> World:
    users = InMemoryUsers()
    institutions = InMemoryInstitutions()
    attendance = InMemoryAttendance()
    approvals = InMemoryApprovals(attendance)
    payroll = InMemoryPayroll()
    notifier = notifier or RecordingNotifier()

    institutions.save_settings(
        InstitutionSettings(
            tenant_id=TENANT_ID,
            school_lat=SCHOOL_LAT,
            school_lng=SCHOOL_LNG,
            radius_meters=500,
            lateness_cutoff=time(8, 5),
            late_fine_minor=50_000,
        )
    )
    container = wire_services(
        users_repo=users,
        institutions_repo=institutions,
        attendance_repo=attendance,
        approvals_repo=approvals,
        payroll_repo=payroll,
        notifier=notifier,
    )
    world = World(users, institutions, attendance, approvals, payroll, notifier, container)
    world.add_user(ADMIN_ID, Role.ADMIN)
    world.add_user(PRINCIPAL_ID, Role.PRINCIPAL)
    world.add_user(BURSAR_ID, Role.BURSAR)
    world.add_user(STAFF_ID)
    world.add_user(OTHER_STAFF_ID)
    return world


@pytest.fixture
def world() -> World:
    return build_world()


@pytest.fixture
def make_world():
    return build_world
