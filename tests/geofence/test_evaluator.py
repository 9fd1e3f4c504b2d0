import math

import pytest

from src.presence_payroll.presence_payroll.core.exceptions import ValidationError
from src.presence_payroll.presence_payroll.geofence.evaluator import evaluate, format_distance, haversine_distance
from src.presence_payroll.presence_payroll.geofence.model import GeoPoint

SCHOOL = GeoPoint(lat=6.5244, lng=3.3792)


def _north(meters: float) -> GeoPoint:
    return GeoPoint(lat=SCHOOL.lat + math.degrees(meters / 6_371_000), lng=SCHOOL.lng)


def test_distance_to_self_is_zero():
    assert haversine_distance(SCHOOL.lat, SCHOOL.lng, SCHOOL.lat, SCHOOL.lng) == 0


def test_distance_is_symmetric():
    a = (6.5244, 3.3792)
    b = (6.4474, 3.4723)
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a))


def test_distance_matches_known_pair():
    # Lagos Island to Ikeja, roughly 17km apart.
    d = haversine_distance(6.4541, 3.3947, 6.6018, 3.3515)
    assert 16_000 < d < 18_000


def test_inside_radius_is_verified():
    verdict = evaluate(_north(99), SCHOOL, 100)
    assert verdict.verified
    assert verdict.distance_meters == pytest.approx(99, abs=0.01)


def test_outside_radius_is_refused():
    verdict = evaluate(_north(101), SCHOOL, 100)
    assert not verdict.verified
    assert verdict.distance_meters == pytest.approx(101, abs=0.01)


def test_same_point_is_verified_for_any_positive_radius():
    assert evaluate(SCHOOL, SCHOOL, 1).verified


def test_missing_location_fails_with_infinite_distance():
    verdict = evaluate(GeoPoint.unavailable(), SCHOOL, 500)
    assert not verdict.verified
    assert verdict.location_unavailable
    assert math.isinf(verdict.distance_meters)


def test_nan_coordinate_counts_as_unavailable():
    verdict = evaluate(GeoPoint(lat=float("nan"), lng=3.3), SCHOOL, 500)
    assert verdict.location_unavailable
    assert not verdict.verified


@pytest.mark.parametrize("radius", [0, -5])
def test_non_positive_radius_is_rejected(radius):
    with pytest.raises(ValidationError):
        evaluate(SCHOOL, SCHOOL, radius)


def test_unconfigured_school_is_rejected():
    with pytest.raises(ValidationError):
        evaluate(SCHOOL, GeoPoint.unavailable(), 500)


def test_out_of_range_coordinates_are_rejected():
    with pytest.raises(ValidationError):
        evaluate(GeoPoint(lat=91, lng=0), SCHOOL, 500)


def test_format_distance():
    assert format_distance(650.4) == "650m"
    assert format_distance(1500) == "1.50km"
    assert format_distance(math.inf) == "unknown distance"
