from datetime import date, datetime

import pytest

from src.presence_payroll.presence_payroll.core.enums import ErrorKind, PayrollFlag, PayrollRunStatus, Role, SessionSource
from src.presence_payroll.presence_payroll.core.exceptions import TenantScopeError

ADMIN, PRINCIPAL, BURSAR = 1, 2, 3
STAFF, OTHER_STAFF = 10, 11


def _clock_in(world, staff_id, when: datetime, meters=10):
    world.container.attendance_service.record_attempt(world.actor(staff_id), world.point_north(meters), now=when)


def _generate(world, month=3, year=2025, days=22, divisor=22, actor=BURSAR):
    return world.container.payroll_service.generate_run(world.actor(actor), month, year, days, divisor, now=datetime(2025, 4, 1, 9))


def test_run_covers_every_active_staff_member(world):
    world.set_structure(STAFF, base=5_000_000)

    details = _generate(world).data

    assert [i.staff_id for i in details.items] == [ADMIN, PRINCIPAL, BURSAR, STAFF, OTHER_STAFF]
    missing = [i.staff_id for i in details.items if PayrollFlag.MISSING_STRUCTURE in i.flags]
    assert missing == [ADMIN, PRINCIPAL, BURSAR, OTHER_STAFF]


def test_total_payout_equals_sum_of_net_pay(world):
    world.set_structure(STAFF, base=5_000_000, housing=1_000_000, tax=300_000)
    world.set_structure(OTHER_STAFF, base=4_000_000, pension=200_000)
    for day in (3, 4, 5):
        _clock_in(world, STAFF, datetime(2025, 3, day, 7, 45))
        _clock_in(world, OTHER_STAFF, datetime(2025, 3, day, 8, 30))

    details = _generate(world).data

    assert details.run.total_payout == sum(i.net_pay for i in details.items)
    assert details.run.status == PayrollRunStatus.DRAFT


def test_days_present_and_lateness_come_from_sessions(world):
    world.set_structure(STAFF, base=2_200_000)
    _clock_in(world, STAFF, datetime(2025, 3, 3, 7, 45))
    _clock_in(world, STAFF, datetime(2025, 3, 4, 8, 5))
    _clock_in(world, STAFF, datetime(2025, 3, 5, 8, 6))
    _clock_in(world, STAFF, datetime(2025, 2, 28, 7, 45))  # previous month

    item = next(i for i in _generate(world).data.items if i.staff_id == STAFF)

    assert item.days_present == 3
    assert item.lateness_count == 1
    assert item.days_absent == 19


def test_approved_dispute_counts_even_without_override_session(world):
    world.set_structure(STAFF, base=2_200_000)
    when = datetime(2025, 3, 6, 7, 50)
    attempt = world.container.attendance_service.record_attempt(world.actor(STAFF), world.point_north(650), now=when)
    dispute = world.container.approval_service.submit_dispute(world.actor(STAFF), attempt.data.attempt_id, "drift", now=when)
    world.container.approval_service.approve(world.actor(PRINCIPAL), dispute.data.dispute_id, now=when)
    world.attendance.sessions.clear()

    item = next(i for i in _generate(world).data.items if i.staff_id == STAFF)

    assert item.days_present == 1


def test_override_session_and_dispute_are_not_double_counted(world):
    world.set_structure(STAFF, base=2_200_000)
    when = datetime(2025, 3, 6, 7, 50)
    attempt = world.container.attendance_service.record_attempt(world.actor(STAFF), world.point_north(650), now=when)
    dispute = world.container.approval_service.submit_dispute(world.actor(STAFF), attempt.data.attempt_id, "drift", now=when)
    world.container.approval_service.approve(world.actor(PRINCIPAL), dispute.data.dispute_id, now=when)
    assert world.attendance.get_session(tenant_id=1, staff_id=STAFF, work_date=when.date()).source == SessionSource.MANUAL_OVERRIDE

    item = next(i for i in _generate(world).data.items if i.staff_id == STAFF)

    assert item.days_present == 1


def test_duplicate_run_returns_existing(world):
    first = _generate(world)
    second = _generate(world)

    assert first.success
    assert not second.success
    assert second.error_kind == ErrorKind.DUPLICATE_RUN
    assert second.data.run_id == first.data.run.run_id
    assert len(world.payroll.runs) == 1


def test_duplicate_detected_at_insert_time(world):
    _generate(world)
    # A concurrent generation passed the pre-check before ours committed.
    original_find = world.payroll.find_run
    calls = []

    def find_run(**kwargs):
        calls.append(kwargs)
        return None if len(calls) == 1 else original_find(**kwargs)

    world.payroll.find_run = find_run

    result = _generate(world)

    assert result.error_kind == ErrorKind.DUPLICATE_RUN
    assert result.data is not None


def test_missing_structure_does_not_abort_run(world):
    details = _generate(world).data
    assert details.run.total_payout == 0
    assert all(PayrollFlag.MISSING_STRUCTURE in i.flags for i in details.items)


def test_generate_requires_payroll_role(world):
    for who in (STAFF, PRINCIPAL):
        assert _generate(world, actor=who).error_kind == ErrorKind.FORBIDDEN
    assert _generate(world, actor=ADMIN).success


@pytest.mark.parametrize(
    "month,days,divisor",
    [
        (13, 22, 22),
        (0, 22, 22),
        (3, 0, 22),
        (3, 22, 0),
        (3, 32, 22),
        (3, 200, 22),
        (3, 22, 128),
    ],
)
def test_generate_validates_parameters(world, month, days, divisor):
    assert _generate(world, month=month, days=days, divisor=divisor).error_kind == ErrorKind.VALIDATION


def test_finalize_transitions_once(world):
    run_id = _generate(world).data.run.run_id
    svc = world.container.payroll_service

    first = svc.finalize_run(world.actor(BURSAR), run_id, now=datetime(2025, 4, 2, 9))
    second = svc.finalize_run(world.actor(BURSAR), run_id)

    assert first.data.status == PayrollRunStatus.FINALIZED
    assert first.data.finalized_at == datetime(2025, 4, 2, 9)
    assert second.error_kind == ErrorKind.INVALID_STATE
    assert world.notifier.sent[-1]["subject"] == "Payroll finalized"


def test_upsert_salary_structure_parses_major_units(world):
    result = world.container.payroll_service.upsert_salary_structure(
        world.actor(BURSAR),
        STAFF,
        base_salary="85,000.50",
        housing_allowance="10000",
        bank_name="GTBank",
        account_number="0012345678",
    )

    assert result.success
    stored = world.payroll.get_salary_structure(tenant_id=1, staff_id=STAFF)
    assert stored.base_salary == 8_500_050
    assert stored.housing_allowance == 1_000_000
    assert stored.account_number == "0012345678"
    assert stored.account_name == "User 10"


def test_upsert_salary_structure_rejects_floats_and_bad_accounts(world):
    svc = world.container.payroll_service
    assert svc.upsert_salary_structure(world.actor(BURSAR), STAFF, base_salary=1.5).error_kind == ErrorKind.VALIDATION
    assert (
        svc.upsert_salary_structure(world.actor(BURSAR), STAFF, account_number="12-34").error_kind
        == ErrorKind.VALIDATION
    )
    assert svc.upsert_salary_structure(world.actor(BURSAR), 404).error_kind == ErrorKind.NOT_FOUND


def test_run_details_are_tenant_scoped(world):
    run_id = _generate(world).data.run.run_id
    world.add_user(77, Role.BURSAR, tenant_id=2)

    with pytest.raises(TenantScopeError):
        world.container.payroll_service.get_run_details(world.actor(77), run_id)


def test_list_runs_newest_first(world):
    _generate(world, month=2)
    _generate(world, month=3)

    runs = world.container.payroll_service.list_runs(world.actor(BURSAR)).data

    assert [(r.month, r.year) for r in runs] == [(3, 2025), (2, 2025)]
    assert runs[0].period == (date(2025, 3, 1), date(2025, 3, 31))
