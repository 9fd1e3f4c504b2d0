from __future__ import annotations

import math
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def require_positive_int(value: int, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


def require_int_between(value: int, field_name: str, low: int, high: int) -> int:
    number = require_positive_int(value, field_name)
    if not low <= number <= high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return number


def require_month(month: int) -> int:
    return require_int_between(month, "Month", 1, 12)


def require_coordinates(lat: float, lng: float) -> tuple[float, float]:
    """Reject coordinates that are present but outside the valid range."""
    try:
        lat_f, lng_f = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numeric")
    if math.isnan(lat_f) or math.isnan(lng_f):
        raise ValidationError("Coordinates must be numeric")
    if not -90 <= lat_f <= 90 or not -180 <= lng_f <= 180:
        raise ValidationError("Coordinates out of range")
    return lat_f, lng_f
