from __future__ import annotations

import pytest

import dues
import finance
import notifications
from errors import AllocationExceedsTotal, AllocationMismatch, DataAccessError, InactivePeriod, InvalidAmount, NoPeriodSelected
from models import MONTHLY, CollectionConfig, Payment, Period

CONFIG = CollectionConfig(years=(2024,))


def record(member_id, year, month, amount):
    return finance.create_payment(
        Payment(id=None, member_id=member_id, member_name="Rahim", amount=amount, date="2024-01-05", kind=MONTHLY, year=year, month=month)
    )


def amounts_by_month(member_id, year=2024):
    out = {}
    for p in finance.list_payments(member_id=member_id, kind=MONTHLY, year=year):
        out[p.month] = out.get(p.month, 0.0) + p.amount
    return out


def test_even_split_tops_up_paid_months_and_creates_missing(fund_db):
    jan = record(1, 2024, 1, 500.0)
    mar = record(1, 2024, 3, 300.0)

    result = dues.apply_allocation(1, "Rahim", 2024, [1, 2, 3], 1200.0, CONFIG)

    assert result.allocations == {1: 400.0, 2: 400.0, 3: 400.0}
    assert result.already_paid == [1, 3]
    assert result.ok
    assert result.written[1] == jan
    assert result.written[3] == mar
    assert amounts_by_month(1) == {1: 900.0, 2: 400.0, 3: 700.0}
    assert len(finance.list_payments(member_id=1)) == 3
    assert any("Already paid: Jan, Mar" in w for w in result.warnings)


def test_increment_targets_first_payment_and_unhides_it(fund_db):
    first = record(1, 2024, 5, 100.0)
    record(1, 2024, 5, 50.0)
    finance.hide_payment(first)
    dues.apply_allocation(1, "Rahim", 2024, [5], 25.0, CONFIG)

    payment = finance.get_payment(first)
    assert payment.amount == 125.0
    assert payment.hidden_from_profile is False
    assert amounts_by_month(1) == {5: 175.0}


def test_member_is_notified_for_each_month(fund_db):
    record(1, 2024, 1, 500.0)
    dues.apply_allocation(1, "Rahim", 2024, [1, 2], 200.0, CONFIG)

    titles = sorted(n["title"] for n in notifications.list_notifications(1))
    assert titles == ["Payment Added", "Payment Updated"]


def test_inactive_month_rejected_before_any_write(fund_db):
    config = CollectionConfig(years=(2024,), months={2024: (1, 3, 5)})
    with pytest.raises(InactivePeriod) as exc:
        dues.apply_allocation(1, "Rahim", 2024, [1, 2], 200.0, config)
    assert exc.value.month == 2
    assert finance.list_payments() == []


def test_inactive_year_rejected(fund_db):
    with pytest.raises(InactivePeriod):
        dues.apply_allocation(1, "Rahim", 2025, [1], 200.0, CONFIG)


def test_over_allocation_performs_zero_writes(fund_db):
    record(1, 2024, 1, 500.0)
    with pytest.raises(AllocationExceedsTotal):
        dues.apply_allocation(1, "Rahim", 2024, [1, 2], 1000.0, CONFIG, {1: 600.0, 2: 405.0})
    assert amounts_by_month(1) == {1: 500.0}


def test_negative_total_raises_instead_of_writing_nothing(fund_db):
    with pytest.raises(InvalidAmount):
        dues.apply_allocation(5, "Nasrin", 2024, [1], -100, CONFIG)
    with pytest.raises(InvalidAmount):
        dues.apply_allocation(5, "Nasrin", 2024, [1, 2], "abc", CONFIG)
    assert finance.list_payments() == []


def test_empty_selection_rejected(fund_db):
    with pytest.raises(NoPeriodSelected):
        dues.apply_allocation(1, "Rahim", 2024, [], 100.0, CONFIG)


def test_under_allocation_is_recorded_with_a_warning(fund_db):
    result = dues.apply_allocation(1, "Rahim", 2024, [1, 2, 3], 1000.0, CONFIG, {1: 300.0, 2: 300.0, 3: None})

    assert result.residual == pytest.approx(400.0)
    assert any("not allocated" in w for w in result.warnings)
    assert amounts_by_month(1) == {1: 300.0, 2: 300.0}
    assert 3 not in result.written


def test_strict_total_rejects_mismatch_before_writing(fund_db):
    with pytest.raises(AllocationMismatch):
        dues.apply_allocation(1, "Rahim", 2024, [1, 2], 1000.0, CONFIG, {1: 300.0, 2: 300.0}, strict_total=True)
    assert finance.list_payments() == []


class FlakyStore:
    """Store that fails writes for some months."""

    def __init__(self, fail_months, existing=()):
        self.fail_months = set(fail_months)
        self.existing = list(existing)
        self.created = []
        self.increments = []

    def list_payments(self, member_id=None, kind=None, year=None, month=None):
        return list(self.existing)

    def create_payment(self, payment):
        if payment.month in self.fail_months:
            raise DataAccessError("database is locked")
        self.created.append(payment)
        return 100 + len(self.created)

    def increment_payment_amount(self, payment_id, delta, note=None):
        self.increments.append((payment_id, delta))


def test_failed_month_is_reported_and_others_stay_written():
    existing = [Payment(id=9, member_id=1, member_name="Rahim", amount=50.0, date="2024-01-01", kind=MONTHLY, year=2024, month=1)]
    store = FlakyStore(fail_months={2}, existing=existing)

    result = dues.apply_allocation(1, "Rahim", 2024, [1, 2, 3], 300.0, CONFIG, store=store, send_notifications=False)

    assert not result.ok
    assert set(result.failed) == {2}
    assert "locked" in result.failed[2]
    assert result.written == {1: 9, 3: 101}
    assert store.increments == [(9, 100.0)]
    assert [p.month for p in store.created] == [3]


def test_set_period_amount_lifecycle(fund_db):
    period = Period(2024, 4)
    assert dues.set_period_amount(1, "Rahim", period, 300.0, CONFIG) == "created"
    assert dues.set_period_amount(1, "Rahim", period, 300.0, CONFIG) == "unchanged"

    record(1, 2024, 4, 50.0)  # accidental duplicate
    assert dues.set_period_amount(1, "Rahim", period, 500.0, CONFIG) == "updated"
    payments = finance.list_payments(member_id=1, kind=MONTHLY, year=2024, month=4)
    assert [p.amount for p in payments] == [500.0]

    assert dues.set_period_amount(1, "Rahim", period, None, CONFIG) == "removed"
    assert finance.list_payments(member_id=1) == []
    assert dues.set_period_amount(1, "Rahim", period, 0, CONFIG) == "unchanged"


def test_set_period_amount_respects_calendar(fund_db):
    with pytest.raises(InactivePeriod):
        dues.set_period_amount(1, "Rahim", Period(2023, 4), 300.0, CONFIG)
