from __future__ import annotations

from datetime import date

import pytest

import dues
from models import DUE_SOON, FUTURE, MONTHLY, ONE_TIME, OVERDUE, PAID, CellStatus, Payment, Period


def pay(member_id, year, month, amount, pid=1, kind=MONTHLY):
    return Payment(
        id=pid,
        member_id=member_id,
        member_name=f"Member {member_id}",
        amount=amount,
        date="2024-01-01",
        kind=kind,
        year=year,
        month=month,
    )


TODAY = date(2024, 3, 15)


@pytest.mark.parametrize(
    "period",
    [Period(2023, 1), Period(2024, 2), Period(2024, 3), Period(2024, 4), Period(2030, 12)],
)
def test_any_payment_makes_period_paid_regardless_of_date(period):
    payments = [pay(7, period.year, period.month, 250.0)]
    for today in (date(2020, 1, 1), TODAY, date(2024, 3, 5), date(2031, 6, 30)):
        assert dues.resolve_status(7, period, payments, today) == CellStatus(PAID, 250.0)


def test_duplicate_payments_are_summed():
    payments = [pay(7, 2024, 1, 500.0, pid=1), pay(7, 2024, 1, "150", pid=2), pay(8, 2024, 1, 999.0, pid=3)]
    status = dues.resolve_status(7, Period(2024, 1), payments, TODAY)
    assert status.status == PAID
    assert status.amount == 650.0


def test_future_periods_without_payment():
    assert dues.resolve_status(7, Period(2025, 1), [], TODAY).status == FUTURE
    assert dues.resolve_status(7, Period(2024, 4), [], TODAY).status == FUTURE
    assert dues.resolve_status(7, Period(2024, 4), [], TODAY).amount == 0.0


def test_past_periods_are_overdue():
    assert dues.resolve_status(7, Period(2023, 12), [], TODAY).status == OVERDUE
    assert dues.resolve_status(7, Period(2024, 2), [], TODAY).status == OVERDUE


def test_current_month_grace_window():
    period = Period(2024, 3)
    assert dues.resolve_status(7, period, [], date(2024, 3, 15)).status == OVERDUE
    assert dues.resolve_status(7, period, [], date(2024, 3, 5)).status == DUE_SOON
    assert dues.resolve_status(7, period, [], date(2024, 3, 1)).status == DUE_SOON
    assert dues.resolve_status(7, period, [], date(2024, 3, 10)).status == DUE_SOON
    assert dues.resolve_status(7, period, [], date(2024, 3, 11)).status == OVERDUE


def test_other_members_and_one_time_payments_do_not_count():
    payments = [
        pay(8, 2024, 2, 100.0),
        Payment(id=2, member_id=7, member_name="M", amount=100.0, date="2024-02-02", kind=ONE_TIME),
    ]
    assert dues.resolve_status(7, Period(2024, 2), payments, TODAY).status == OVERDUE


def test_malformed_payments_are_skipped():
    payments = [
        pay(7, None, 2, 100.0, pid=1),
        pay(7, 2024, "feb", 100.0, pid=2),
        pay(7, 2024, 2, 40.0, pid=3),
    ]
    assert dues.resolve_status(7, Period(2024, 2), payments, TODAY) == CellStatus(PAID, 40.0)


def test_resolving_twice_gives_the_same_answer():
    payments = [pay(7, 2024, 1, 500.0)]
    first = dues.resolve_status(7, Period(2024, 1), payments, TODAY)
    second = dues.resolve_status(7, Period(2024, 1), payments, TODAY)
    assert first == second


def test_matrix_matches_cell_by_cell_resolution():
    payments = [pay(1, 2024, 1, 500.0, pid=1), pay(1, 2024, 1, 100.0, pid=2), pay(2, 2024, 3, 300.0, pid=3)]
    periods = [Period(2024, m) for m in range(1, 13)]
    cells = dues.resolve_matrix([1, 2, 3], periods, payments, TODAY)
    for member_id in (1, 2, 3):
        for period in periods:
            assert cells[(member_id, period)] == dues.resolve_status(member_id, period, payments, TODAY)
    assert cells[(1, Period(2024, 1))] == CellStatus(PAID, 600.0)
