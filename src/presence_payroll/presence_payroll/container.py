from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from .approvals.effects import AttendanceCreditEffect
from .approvals.mysql_approval_repository import MySQLApprovalRepository
from .approvals.service import ApprovalService
from .approvals.workflow import ApprovalWorkflow
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_LATE_FINE_MINOR, DEFAULT_LATENESS_CUTOFF, DEFAULT_RADIUS_METERS
from .core.enums import ApprovalKind
from .database.bootstrap import db_config_from_settings
from .database.connection import DatabaseConnection
from .institutions.mysql_institution_repository import MySQLInstitutionRepository
from .institutions.service import InstitutionService
from .ledger.service import LedgerService
from .notifications.notifier import LoggingNotifier, Notifier
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.service import PayrollService
from .reconciliation.service import ReconciliationService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    auth_service: AuthService
    institution_service: InstitutionService
    attendance_service: AttendanceService
    approval_service: ApprovalService
    payroll_service: PayrollService
    reconciliation_service: ReconciliationService
    ledger_service: LedgerService


def wire_services(
    *,
    users_repo,
    institutions_repo,
    attendance_repo,
    approvals_repo,
    payroll_repo,
    notifier: Optional[Notifier] = None,
    conn: Optional[DatabaseConnection] = None,
    default_radius_meters: int = DEFAULT_RADIUS_METERS,
    default_lateness_cutoff: time = DEFAULT_LATENESS_CUTOFF,
    default_late_fine_minor: int = DEFAULT_LATE_FINE_MINOR,
) -> Container:
    """Build every service on top of the given repositories (MySQL or in-memory)."""
    notifier = notifier or LoggingNotifier()

    institution_service = InstitutionService(
        institutions_repo,
        default_radius_meters=default_radius_meters,
        default_lateness_cutoff=default_lateness_cutoff,
        default_late_fine_minor=default_late_fine_minor,
    )
    workflow = ApprovalWorkflow(
        approvals_repo,
        effects={ApprovalKind.ATTENDANCE_DISPUTE: AttendanceCreditEffect(approvals_repo, attendance_repo)},
        notifier=notifier,
    )

    return Container(
        conn=conn,
        auth_service=AuthService(users_repo),
        institution_service=institution_service,
        attendance_service=AttendanceService(attendance_repo, institution_service),
        approval_service=ApprovalService(approvals_repo, attendance_repo, workflow),
        payroll_service=PayrollService(
            payroll_repo,
            attendance_repo,
            approvals_repo,
            users_repo,
            institution_service,
            notifier=notifier,
        ),
        reconciliation_service=ReconciliationService(payroll_repo, attendance_repo, approvals_repo, users_repo),
        ledger_service=LedgerService(payroll_repo, approvals_repo),
    )


def build_container(*, db_config: dict, **defaults) -> Container:
    conn = DatabaseConnection.get_instance(db_config_from_settings(db_config))

    return wire_services(
        users_repo=MySQLUserRepository(conn),
        institutions_repo=MySQLInstitutionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        approvals_repo=MySQLApprovalRepository(conn),
        payroll_repo=MySQLPayrollRepository(conn),
        conn=conn,
        **defaults,
    )
