from __future__ import annotations

import logging
from dataclasses import replace
from datetime import time
from typing import Optional

from ..common.money import to_minor
from ..common.validators import require_coordinates, require_positive_int
from ..core.constants import DEFAULT_LATE_FINE_MINOR, DEFAULT_LATENESS_CUTOFF, DEFAULT_RADIUS_METERS
from ..core.enums import AUTHORITY_ROLES
from ..core.result import returns_result
from ..users.model import Actor
from .model import InstitutionSettings
from .repository import InstitutionRepository

logger = logging.getLogger(__name__)


class InstitutionService:
    """Reads and updates per-tenant geofence and payroll policy."""

    def __init__(
        self,
        institutions: InstitutionRepository,
        *,
        default_radius_meters: int = DEFAULT_RADIUS_METERS,
        default_lateness_cutoff: time = DEFAULT_LATENESS_CUTOFF,
        default_late_fine_minor: int = DEFAULT_LATE_FINE_MINOR,
    ):
        self._institutions = institutions
        self._defaults = dict(
            radius_meters=int(default_radius_meters),
            lateness_cutoff=default_lateness_cutoff,
            late_fine_minor=int(default_late_fine_minor),
        )

    def settings_for(self, tenant_id: int) -> InstitutionSettings:
        """Stored settings, or defaults (without a geofence centre) when none exist."""
        stored = self._institutions.get_settings(int(tenant_id))
        if stored:
            return stored
        return InstitutionSettings(tenant_id=int(tenant_id), **self._defaults)

    @returns_result
    def get_settings(self, actor: Actor) -> InstitutionSettings:
        return self.settings_for(actor.tenant_id)

    @returns_result
    def configure_geofence(
        self,
        actor: Actor,
        *,
        lat: float,
        lng: float,
        radius_meters: int,
        lateness_cutoff: Optional[time] = None,
        late_fine: Optional[str] = None,
        absence_rate: Optional[str] = None,
    ) -> InstitutionSettings:
        actor.require_role(AUTHORITY_ROLES, "Only an administrator can configure the geofence")
        lat_f, lng_f = require_coordinates(lat, lng)
        current = self.settings_for(actor.tenant_id)
        updated = replace(
            current,
            school_lat=lat_f,
            school_lng=lng_f,
            radius_meters=require_positive_int(radius_meters, "Radius"),
            lateness_cutoff=lateness_cutoff or current.lateness_cutoff,
            late_fine_minor=to_minor(late_fine, "Late fine") if late_fine is not None else current.late_fine_minor,
            absence_rate_minor=(
                to_minor(absence_rate, "Absence rate") if absence_rate is not None else current.absence_rate_minor
            ),
        )
        self._institutions.save_settings(updated)
        logger.info(
            "Geofence for tenant %s set to (%s, %s) r=%sm by %s",
            actor.tenant_id, lat_f, lng_f, updated.radius_meters, actor.staff_id,
        )
        return updated
