from datetime import datetime, timedelta

import pytest

from src.presence_payroll.presence_payroll.core.enums import AttemptOutcome, ErrorKind, SessionSource
from src.presence_payroll.presence_payroll.geofence.model import GeoPoint

STAFF = 10


def test_verified_attempt_opens_session(world, fixed_now):
    svc = world.container.attendance_service

    result = svc.record_attempt(world.actor(STAFF), world.point_north(120), now=fixed_now)

    assert result.success
    assert result.data.success
    assert result.data.outcome == AttemptOutcome.SUCCESS
    session = world.attendance.get_session(tenant_id=1, staff_id=STAFF, work_date=fixed_now.date())
    assert session is not None
    assert session.source == SessionSource.GEOFENCE
    assert session.clock_in_time == fixed_now


def test_out_of_range_attempt_is_logged_without_session(world, fixed_now):
    svc = world.container.attendance_service

    result = svc.record_attempt(world.actor(STAFF), world.point_north(650), now=fixed_now)

    # The operation succeeded in recording; the clock-in itself was refused.
    assert result.success
    assert not result.data.success
    assert result.data.outcome == AttemptOutcome.FAILED_OUT_OF_RANGE
    assert "650m" in result.data.message
    assert "500m" in result.data.message

    attempt = world.attendance.get_attempt(result.data.attempt_id)
    assert attempt.distance_meters > 500
    assert attempt.radius_meters == 500
    assert world.attendance.get_session(tenant_id=1, staff_id=STAFF, work_date=fixed_now.date()) is None


def test_unavailable_location_is_logged_as_failure(world, fixed_now):
    result = world.container.attendance_service.record_attempt(world.actor(STAFF), GeoPoint.unavailable(), now=fixed_now)

    assert result.success
    attempt = world.attendance.get_attempt(result.data.attempt_id)
    assert attempt.location_unavailable
    assert attempt.outcome == AttemptOutcome.FAILED_OUT_OF_RANGE
    assert not attempt.distance_known


def test_every_attempt_is_appended(world, fixed_now):
    svc = world.container.attendance_service
    actor = world.actor(STAFF)

    svc.record_attempt(actor, world.point_north(900), now=fixed_now)
    svc.record_attempt(actor, world.point_north(700), now=fixed_now + timedelta(minutes=1))
    svc.record_attempt(actor, world.point_north(50), now=fixed_now + timedelta(minutes=2))
    svc.record_attempt(actor, world.point_north(10), now=fixed_now + timedelta(minutes=3))

    assert len(world.attendance.attempts) == 4
    assert len(world.attendance.sessions) == 1


def test_second_verified_attempt_keeps_first_clock_in(world, fixed_now):
    svc = world.container.attendance_service
    actor = world.actor(STAFF)

    svc.record_attempt(actor, world.point_north(10), now=fixed_now)
    later = svc.record_attempt(actor, world.point_north(10), now=fixed_now + timedelta(hours=1))

    assert later.data.session.clock_in_time == fixed_now


def test_explicit_radius_overrides_institution_setting(world, fixed_now):
    result = world.container.attendance_service.record_attempt(
        world.actor(STAFF), world.point_north(650), radius_meters=1000, now=fixed_now
    )
    assert result.data.success


def test_unconfigured_geofence_is_a_validation_failure(world, fixed_now):
    world.institutions.settings.clear()

    result = world.container.attendance_service.record_attempt(world.actor(STAFF), world.point_north(0), now=fixed_now)

    assert not result.success
    assert result.error_kind == ErrorKind.VALIDATION
    assert world.attendance.attempts == {}


def test_clock_out_closes_session_once(world, fixed_now):
    svc = world.container.attendance_service
    actor = world.actor(STAFF)
    svc.record_attempt(actor, world.point_north(10), now=fixed_now)

    first = svc.clock_out(actor, now=fixed_now.replace(hour=16))
    second = svc.clock_out(actor, now=fixed_now.replace(hour=17))

    assert first.success
    assert first.data.clock_out_time == fixed_now.replace(hour=16)
    assert not second.success
    assert second.error_kind == ErrorKind.INVALID_STATE


def test_clock_out_without_clock_in_fails(world, fixed_now):
    result = world.container.attendance_service.clock_out(world.actor(STAFF), now=fixed_now)
    assert not result.success
    assert result.error_kind == ErrorKind.VALIDATION


def test_clock_status_reports_lateness(world):
    svc = world.container.attendance_service
    actor = world.actor(STAFF)
    late = datetime(2025, 3, 11, 8, 6)
    svc.record_attempt(actor, world.point_north(10), now=late)

    status = svc.get_clock_status(actor, today=late.date())

    assert status.data.clocked_in
    assert status.data.is_late


def test_history_lists_recent_sessions_first(world):
    svc = world.container.attendance_service
    actor = world.actor(STAFF)
    svc.record_attempt(actor, world.point_north(10), now=datetime(2025, 3, 10, 7, 50))
    svc.record_attempt(actor, world.point_north(10), now=datetime(2025, 3, 11, 8, 30))

    history = svc.get_history(actor).data

    assert [h["date"] for h in history] == ["2025-03-11", "2025-03-10"]
    assert history[0]["status"] == "late"
    assert history[1]["status"] == "present"


def test_attempts_are_visible_to_owner_and_authorities_only(world, fixed_now):
    svc = world.container.attendance_service
    attempt_id = svc.record_attempt(world.actor(STAFF), world.point_north(650), now=fixed_now).data.attempt_id

    assert svc.get_attempt(world.actor(STAFF), attempt_id).success
    assert svc.get_attempt(world.actor(2), attempt_id).success
    assert svc.get_attempt(world.actor(11), attempt_id).error_kind == ErrorKind.FORBIDDEN
    assert svc.get_attempt(world.actor(STAFF), 999).error_kind == ErrorKind.NOT_FOUND


def test_failed_session_write_rolls_back_the_attempt(world, fixed_now, monkeypatch):
    def drop_connection(opening):
        raise RuntimeError("db connection dropped")

    monkeypatch.setattr(world.attendance, "insert_session", drop_connection)

    with pytest.raises(RuntimeError):
        world.container.attendance_service.record_attempt(world.actor(STAFF), world.point_north(40), now=fixed_now)

    assert world.attendance.attempts == {}
    assert world.attendance.sessions == {}


def test_failed_attempt_never_opens_a_session(world, fixed_now, monkeypatch):
    def fail_if_called(opening):
        raise AssertionError("no session expected")

    monkeypatch.setattr(world.attendance, "insert_session", fail_if_called)

    result = world.container.attendance_service.record_attempt(world.actor(STAFF), world.point_north(650), now=fixed_now)

    assert result.success
    assert not result.data.success
    assert len(world.attendance.attempts) == 1


@pytest.mark.parametrize(
    "clock_in, late",
    [
        (datetime(2025, 3, 11, 8, 5, 0), False),
        (datetime(2025, 3, 11, 8, 5, 59), False),
        (datetime(2025, 3, 11, 8, 6, 0), True),
    ],
)
def test_lateness_is_judged_to_the_minute(world, clock_in, late):
    svc = world.container.attendance_service
    actor = world.actor(STAFF)
    svc.record_attempt(actor, world.point_north(10), now=clock_in)

    assert svc.get_clock_status(actor, today=clock_in.date()).data.is_late is late
