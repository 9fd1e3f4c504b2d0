from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    """A captured or configured location. ``None`` fields mean unavailable."""

    lat: Optional[float]
    lng: Optional[float]

    @classmethod
    def unavailable(cls) -> "GeoPoint":
        """Location services denied or no fix obtained."""
        return cls(lat=None, lng=None)


@dataclass(frozen=True)
class GeofenceVerdict:
    distance_meters: float
    verified: bool
    radius_meters: float
    location_unavailable: bool = False
