from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time
from .model import InstitutionSettings
from .repository import InstitutionRepository


class MySQLInstitutionRepository(InstitutionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_settings(self, tenant_id: int) -> Optional[InstitutionSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT tenant_id, geofence_lat, geofence_lng, geofence_radius_meters,
                       lateness_cutoff, late_fine_minor, absence_rate_minor
                FROM institution_settings
                WHERE tenant_id=%s
                """,
                (int(tenant_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return InstitutionSettings(
                tenant_id=int(r["tenant_id"]),
                school_lat=float(r["geofence_lat"]) if r.get("geofence_lat") is not None else None,
                school_lng=float(r["geofence_lng"]) if r.get("geofence_lng") is not None else None,
                radius_meters=int(r["geofence_radius_meters"]),
                lateness_cutoff=normalize_mysql_time(r["lateness_cutoff"]),
                late_fine_minor=int(r["late_fine_minor"]),
                absence_rate_minor=(int(r["absence_rate_minor"]) if r.get("absence_rate_minor") is not None else None),
            )

    def save_settings(self, settings: InstitutionSettings) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO institution_settings(
                    tenant_id, geofence_lat, geofence_lng, geofence_radius_meters,
                    lateness_cutoff, late_fine_minor, absence_rate_minor
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    geofence_lat=VALUES(geofence_lat),
                    geofence_lng=VALUES(geofence_lng),
                    geofence_radius_meters=VALUES(geofence_radius_meters),
                    lateness_cutoff=VALUES(lateness_cutoff),
                    late_fine_minor=VALUES(late_fine_minor),
                    absence_rate_minor=VALUES(absence_rate_minor)
                """,
                (
                    int(settings.tenant_id),
                    settings.school_lat,
                    settings.school_lng,
                    int(settings.radius_meters),
                    settings.lateness_cutoff,
                    int(settings.late_fine_minor),
                    settings.absence_rate_minor,
                ),
            )
