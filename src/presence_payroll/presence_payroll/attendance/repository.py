from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttemptOutcome
from .model import AttendanceAttempt, ClockSession


class AttendanceRepository(Protocol):
    # Attempts (append-only)
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
        """Append one attempt. With ``open_session`` the day's GEOFENCE session
        is opened in the same transaction, or the existing one is returned.

        Nothing is written if either insert fails.
        """

        raise NotImplementedError

    def get_attempt(self, attempt_id: int) -> Optional[AttendanceAttempt]:
        raise NotImplementedError

    def list_attempts(
        self,
        *,
        tenant_id: int,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[AttendanceAttempt]:
        raise NotImplementedError

    # Clock sessions
    def get_session(self, *, tenant_id: int, staff_id: int, work_date: date) -> Optional[ClockSession]:
        raise NotImplementedError

    def close_session(self, *, session_id: int, clock_out_time: datetime) -> bool:
        """Set clock-out only if the session is still open."""

        raise NotImplementedError

    def list_sessions(
        self,
        *,
        tenant_id: int,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None,
    ) -> Sequence[ClockSession]:
        raise NotImplementedError

    def get_recent_sessions(self, *, tenant_id: int, staff_id: int, limit: int) -> Sequence[ClockSession]:
        raise NotImplementedError
