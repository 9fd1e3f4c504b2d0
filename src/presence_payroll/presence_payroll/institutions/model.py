from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..core.constants import DEFAULT_LATE_FINE_MINOR, DEFAULT_LATENESS_CUTOFF, DEFAULT_RADIUS_METERS
from ..geofence.model import GeoPoint


@dataclass(frozen=True)
class InstitutionSettings:
    """Per-tenant configuration consumed by clock-in and payroll.

    ``absence_rate_minor`` overrides the derived daily rate when set.
    """

    tenant_id: int
    school_lat: Optional[float] = None
    school_lng: Optional[float] = None
    radius_meters: int = DEFAULT_RADIUS_METERS
    lateness_cutoff: time = DEFAULT_LATENESS_CUTOFF
    late_fine_minor: int = DEFAULT_LATE_FINE_MINOR
    absence_rate_minor: Optional[int] = None

    @property
    def school_point(self) -> GeoPoint:
        return GeoPoint(lat=self.school_lat, lng=self.school_lng)
