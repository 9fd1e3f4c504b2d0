"""Geofence evaluation: haversine distance and a verified/failed verdict.

Everything here is pure and deterministic.
"""

from __future__ import annotations

import math
from typing import Optional

from ..common.validators import require_coordinates
from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import ValidationError
from .model import GeoPoint, GeofenceVerdict


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def evaluate(submitted: GeoPoint, school: GeoPoint, radius_meters: float) -> GeofenceVerdict:
    """Decide whether ``submitted`` lies within ``radius_meters`` of ``school``.

    A missing submitted coordinate is a failed verification at infinite
    distance, never a pass. The school point must be configured.
    """
    radius = float(radius_meters)
    if radius <= 0:
        raise ValidationError("Geofence radius must be greater than zero")
    if _is_missing(school.lat) or _is_missing(school.lng):
        raise ValidationError("School location is not configured")

    if _is_missing(submitted.lat) or _is_missing(submitted.lng):
        return GeofenceVerdict(
            distance_meters=math.inf,
            verified=False,
            radius_meters=radius,
            location_unavailable=True,
        )

    lat, lng = require_coordinates(submitted.lat, submitted.lng)
    school_lat, school_lng = require_coordinates(school.lat, school.lng)
    distance = haversine_distance(lat, lng, school_lat, school_lng)
    return GeofenceVerdict(distance_meters=distance, verified=distance <= radius, radius_meters=radius)


def format_distance(meters: float) -> str:
    if math.isinf(meters):
        return "unknown distance"
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.2f}km"
