from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AUTHORITY_ROLES, PAYROLL_ROLES, AttemptOutcome
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..core.result import returns_result
from ..geofence.evaluator import evaluate, format_distance
from ..geofence.model import GeoPoint
from ..institutions.service import InstitutionService
from ..users.model import Actor
from .model import AttemptRecorded, AttendanceAttempt, ClockStatus
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Clock-in audit log: every attempt is appended, verified ones open a session."""

    def __init__(self, attendance: AttendanceRepository, institutions: InstitutionService):
        self._attendance = attendance
        self._institutions = institutions

    @returns_result
    def record_attempt(
        self,
        actor: Actor,
        coords: GeoPoint,
        *,
        school: Optional[GeoPoint] = None,
        radius_meters: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AttemptRecorded:
        now = now or now_local()
        settings = self._institutions.settings_for(actor.tenant_id)
        school = school or settings.school_point
        radius = radius_meters if radius_meters is not None else settings.radius_meters

        verdict = evaluate(coords, school, radius)
        outcome = AttemptOutcome.SUCCESS if verdict.verified else AttemptOutcome.FAILED_OUT_OF_RANGE

        attempt, session = self._attendance.append_attempt(
            tenant_id=actor.tenant_id,
            staff_id=actor.staff_id,
            timestamp=now,
            submitted_lat=coords.lat,
            submitted_lng=coords.lng,
            distance_meters=verdict.distance_meters,
            radius_meters=verdict.radius_meters,
            verified=verdict.verified,
            outcome=outcome,
            location_unavailable=verdict.location_unavailable,
            open_session=verdict.verified,
        )

        if not verdict.verified:
            if verdict.location_unavailable:
                message = "Location unavailable. Enable location services or submit a dispute."
            else:
                message = (
                    f"You are {format_distance(verdict.distance_meters)} away from school. "
                    f"You must be within {int(radius)}m to clock in."
                )
            logger.warning(
                "FAILED_LOCATION_VERIFICATION tenant=%s staff=%s attempt=%s distance=%s radius=%s",
                actor.tenant_id, actor.staff_id, attempt.attempt_id, verdict.distance_meters, radius,
            )
            return AttemptRecorded(
                success=False,
                attempt_id=attempt.attempt_id,
                distance=attempt.distance_meters,
                radius_meters=verdict.radius_meters,
                outcome=outcome,
                message=message,
            )

        logger.info(
            "CLOCK_IN tenant=%s staff=%s attempt=%s distance=%.2f",
            actor.tenant_id, actor.staff_id, attempt.attempt_id, verdict.distance_meters,
        )
        return AttemptRecorded(
            success=True,
            attempt_id=attempt.attempt_id,
            distance=attempt.distance_meters,
            radius_meters=verdict.radius_meters,
            outcome=outcome,
            message=f"Clocked in. Distance: {format_distance(verdict.distance_meters)}",
            session=session,
        )

    @returns_result
    def clock_out(self, actor: Actor, *, now: Optional[datetime] = None):
        now = now or now_local()
        session = self._attendance.get_session(tenant_id=actor.tenant_id, staff_id=actor.staff_id, work_date=now.date())
        if not session:
            raise ValidationError("You have not clocked in today")
        if not session.is_open:
            raise InvalidStateError("You have already clocked out today")
        if not self._attendance.close_session(session_id=session.session_id, clock_out_time=now):
            raise InvalidStateError("You have already clocked out today")

        logger.info("CLOCK_OUT tenant=%s staff=%s session=%s", actor.tenant_id, actor.staff_id, session.session_id)
        return self._attendance.get_session(tenant_id=actor.tenant_id, staff_id=actor.staff_id, work_date=now.date())

    @returns_result
    def get_attempt(self, actor: Actor, attempt_id: int) -> AttendanceAttempt:
        attempt = self._attendance.get_attempt(int(attempt_id))
        if not attempt:
            raise NotFoundError("Attendance attempt not found")
        actor.require_tenant(attempt.tenant_id, "attendance attempt")
        if attempt.staff_id != actor.staff_id and actor.role not in AUTHORITY_ROLES | PAYROLL_ROLES:
            raise AuthorizationError("You can only view your own clock-in attempts")
        return attempt

    @returns_result
    def get_clock_status(self, actor: Actor, *, today: Optional[date] = None) -> ClockStatus:
        today = today or now_local().date()
        session = self._attendance.get_session(tenant_id=actor.tenant_id, staff_id=actor.staff_id, work_date=today)
        if not session:
            return ClockStatus(clocked_in=False, clock_in_time=None, clock_out_time=None, source=None, is_late=False)

        cutoff = self._institutions.settings_for(actor.tenant_id).lateness_cutoff
        return ClockStatus(
            clocked_in=session.is_open,
            clock_in_time=session.clock_in_time,
            clock_out_time=session.clock_out_time,
            source=session.source,
            is_late=session.is_late(cutoff),
        )

    @returns_result
    def get_history(self, actor: Actor, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        cutoff = self._institutions.settings_for(actor.tenant_id).lateness_cutoff
        sessions = self._attendance.get_recent_sessions(tenant_id=actor.tenant_id, staff_id=actor.staff_id, limit=limit)
        return [
            {
                "date": s.work_date.strftime("%Y-%m-%d"),
                "check_in": s.clock_in_time.strftime("%H:%M:%S"),
                "check_out": s.clock_out_time.strftime("%H:%M:%S") if s.clock_out_time else "-",
                "status": "late" if s.is_late(cutoff) else "present",
                "verification": s.source.value,
            }
            for s in sessions
        ]
