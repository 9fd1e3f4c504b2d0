from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import AttemptOutcome, SessionSource


@dataclass(frozen=True)
class AttendanceAttempt:
    """Domain entity: one clock-in attempt. Immutable once written."""

    attempt_id: int
    tenant_id: int
    staff_id: int
    timestamp: datetime
    submitted_lat: Optional[float]
    submitted_lng: Optional[float]
    distance_meters: float
    radius_meters: float
    verified: bool
    outcome: AttemptOutcome
    location_unavailable: bool = False

    @property
    def work_date(self) -> date:
        return self.timestamp.date()

    @property
    def distance_known(self) -> bool:
        return not math.isinf(self.distance_meters)

    def to_dict(self) -> dict:
        return {**vars(self), "work_date": self.work_date}


@dataclass(frozen=True)
class ClockSession:
    """One working day for one staff member."""

    session_id: int
    tenant_id: int
    staff_id: int
    work_date: date
    clock_in_time: datetime
    clock_out_time: Optional[datetime]
    source: SessionSource
    dispute_id: Optional[int] = None

    def is_late(self, cutoff: time) -> bool:
        # Minute resolution: 08:05:59 is still on time for an 08:05 cutoff.
        return self.clock_in_time.replace(second=0, microsecond=0).time() > cutoff

    @property
    def is_open(self) -> bool:
        return self.clock_out_time is None


@dataclass(frozen=True)
class SessionOpen:
    """A day's session to open unless one already exists."""

    tenant_id: int
    staff_id: int
    work_date: date
    clock_in_time: datetime
    source: SessionSource
    dispute_id: Optional[int] = None


@dataclass(frozen=True)
class AttemptRecorded:
    """Payload returned to the caller of ``record_attempt``.

    ``success`` mirrors the verdict; the attempt itself is always stored.
    """

    success: bool
    attempt_id: int
    distance: float
    radius_meters: float
    outcome: AttemptOutcome
    message: str
    session: Optional[ClockSession] = None


@dataclass(frozen=True)
class ClockStatus:
    clocked_in: bool
    clock_in_time: Optional[datetime]
    clock_out_time: Optional[datetime]
    source: Optional[SessionSource]
    is_late: bool
