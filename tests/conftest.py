from __future__ import annotations

import pytest

import db


@pytest.fixture
def fund_db(tmp_path, monkeypatch):
    """A fresh database file per test, with every table created."""
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "fund.db")
    db.init_db("not-a-real-hash")
    return tmp_path / "fund.db"
