from __future__ import annotations

from datetime import date

import pytest

import db
import finance
import members
import recycle
from models import APPROVED, MONTHLY, PENDING, Payment


def record(member_id, month, amount=100.0):
    return finance.create_payment(
        Payment(id=None, member_id=member_id, member_name="Salma", amount=amount, date="2024-01-01", kind=MONTHLY, year=2024, month=month)
    )


def test_soft_delete_and_restore_payment(fund_db):
    pid = record(1, 1, 250.0)
    assert finance.delete_payment(pid, "Monthly: Salma (Jan 2024)")
    assert finance.get_payment(pid) is None

    item = recycle.list_items()[0]
    assert item["original_table"] == "payments"
    assert item["name"] == "Monthly: Salma (Jan 2024)"

    recycle.restore(item["id"])
    restored = finance.get_payment(pid)
    assert restored.amount == 250.0
    assert recycle.list_items() == []


def test_soft_delete_missing_row_returns_false(fund_db):
    assert recycle.soft_delete("payments", 999, recycle.PAYMENT, "ghost") is False
    assert recycle.list_items() == []


def test_soft_delete_rejects_unknown_tables(fund_db):
    with pytest.raises(ValueError):
        recycle.soft_delete("admin_users", 1, recycle.OTHER, "admin")


def test_restore_unknown_item(fund_db):
    with pytest.raises(LookupError):
        recycle.restore(42)


def test_permanent_delete(fund_db):
    pid = record(1, 2)
    finance.delete_payment(pid)
    item_id = recycle.list_items()[0]["id"]
    assert recycle.permanent_delete(item_id)
    assert recycle.list_items() == []
    assert finance.get_payment(pid) is None


def test_cleanup_drops_items_past_retention(fund_db):
    old = record(1, 3)
    fresh = record(1, 4)
    finance.delete_payment(old, "old")
    finance.delete_payment(fresh, "fresh")
    db.execute("UPDATE recycle_bin SET deleted_at = ? WHERE name = 'old'", ("2024-01-01T09:00:00",))
    db.execute("UPDATE recycle_bin SET deleted_at = ? WHERE name = 'fresh'", ("2024-01-20T09:00:00",))

    assert recycle.cleanup_old_items(today=date(2024, 1, 21)) == 1
    assert [i["name"] for i in recycle.list_items()] == ["fresh"]


def test_member_delete_and_restore_brings_payments_back(fund_db):
    member_id = members.register_member("Salma Begum", "01700000000", "salma@example.com")
    assert members.get_member(member_id).status == PENDING
    members.approve_member(member_id)
    p1 = record(member_id, 1)
    p2 = record(member_id, 2)
    other = record(member_id + 1, 1)

    assert members.delete_member(member_id)
    assert members.get_member(member_id) is None
    assert [p.id for p in finance.list_payments()] == [other]

    leader = next(i for i in recycle.list_items() if i["item_type"] == recycle.MEMBER)
    recycle.restore(leader["id"])

    assert members.get_member(member_id).status == APPROVED
    assert {p.id for p in finance.list_payments(member_id=member_id)} == {p1, p2}
    assert recycle.list_items() == []
