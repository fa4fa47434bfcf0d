from __future__ import annotations

import json

import pytest

import auth
import backup
import db
import finance
import members
import settings
from errors import ValidationError
from models import MONTHLY, CollectionConfig, Payment


def seed():
    settings.save_config(CollectionConfig(years=(2024,), months={2024: (1, 2)}))
    member_id = members.register_member("Jamal", "0180")
    finance.create_payment(
        Payment(id=None, member_id=member_id, member_name="Jamal", amount=400.0, date="2024-01-03", kind=MONTHLY, year=2024, month=1)
    )
    finance.add_expense("Rice", "Relief", 150.0, "2024-01-04")
    return member_id


def test_backup_reset_restore(fund_db):
    member_id = seed()
    data = backup.export_backup()
    payload = json.loads(data)
    assert len(payload["tables"]["payments"]) == 1
    assert "collection_config" in payload["settings"]
    assert "force_password_change" not in payload["settings"]

    backup.reset_database()
    assert finance.list_payments() == []
    assert members.get_member(member_id) is None
    assert auth.get_admin_by_username("admin") is not None

    settings.save_config(CollectionConfig(years=(2030,)))
    counts = backup.restore_backup(data)

    assert counts["payments"] == 1
    assert counts["expenses"] == 1
    assert members.get_member(member_id).full_name == "Jamal"
    assert finance.list_payments()[0].amount == 400.0
    assert settings.load_config().years == (2024,)


def test_restore_rejects_garbage(fund_db):
    with pytest.raises(ValidationError):
        backup.restore_backup(b"not json")
    with pytest.raises(ValidationError):
        backup.restore_backup(json.dumps({"version": 1}).encode())
    with pytest.raises(ValidationError):
        backup.restore_backup(json.dumps({"tables": {"admin_users": []}}).encode())


def test_bad_backup_leaves_data_untouched(fund_db):
    seed()
    bad = {"tables": {"payments": [], "expenses": [{"id": 1, "title": "x", "nonsense": 1}]}}
    with pytest.raises(ValidationError):
        backup.restore_backup(json.dumps(bad).encode())
    assert len(finance.list_payments()) == 1
    assert len(finance.list_expenses()) == 1
    assert db.fetch_one("SELECT COUNT(*) AS c FROM members")["c"] == 1
