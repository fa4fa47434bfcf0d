"""
utils.py
Validation, dates, exports, sample data.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

import pandas as pd

import db
from errors import InvalidAmount
from models import MONTH_LABELS, MONTHLY, ONE_TIME


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def month_label(month: int) -> str:
    return MONTH_LABELS.get(month, "?")


def month_list_label(months) -> str:
    return ", ".join(month_label(m) for m in sorted(months))


def parse_amount(value, allow_blank: bool = False, allow_zero: bool = True) -> float | None:
    """
    Parse a form amount once, at the boundary.

    Accepts numbers or strings like "1,200.50". Blank input returns None when
    allow_blank is set; anything non-numeric or negative raises InvalidAmount.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_blank:
            return None
        raise InvalidAmount("Amount is required.")
    if isinstance(value, bool):
        raise InvalidAmount("Amount must be numeric.")
    try:
        amount = float(str(value).replace(",", "").strip())
    except ValueError:
        raise InvalidAmount(f"Amount must be numeric, got {value!r}.") from None
    if not math.isfinite(amount):
        raise InvalidAmount("Amount must be a finite number.")
    if amount < 0:
        raise InvalidAmount("Amount cannot be negative.")
    if amount == 0 and not allow_zero:
        raise InvalidAmount("Amount must be > 0.")
    return amount


def as_amount(value) -> float:
    """Numeric value of a stored amount; missing or malformed amounts count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def parse_allocations(raw: dict | None) -> dict[int, float | None]:
    """Parse a month -> amount mapping from a form; blank entries stay None."""
    return {int(m): parse_amount(v, allow_blank=True) for m, v in (raw or {}).items()}


def rows_to_csv_bytes(rows) -> bytes:
    df = pd.DataFrame([dict(r) for r in rows])
    return df.to_csv(index=False).encode("utf-8")


def collection_matrix_frame(members, statuses: dict, periods) -> pd.DataFrame:
    """
    Build the dues matrix (one row per member, one column per period) from
    resolved cell statuses keyed by (member_id, period).
    """
    records = []
    for m in members:
        rec = {"member_id": m["id"], "member": m["full_name"]}
        total = 0.0
        for p in periods:
            cell = statuses[(m["id"], p)]
            rec[month_label(p.month)] = f"{cell.amount:g}" if cell.status == "paid" else cell.status
            total += cell.amount
        rec["total"] = total
        records.append(rec)
    columns = ["member_id", "member"] + [month_label(p.month) for p in periods] + ["total"]
    return pd.DataFrame(records, columns=columns)


def insert_sample_data() -> None:
    """
    Insert 3 approved members, a few monthly dues and one donation
    (safe to run multiple times: adds new rows each time).
    """
    today = date.today()
    now = db.now_iso()

    members = [
        ("Ahmed Hassan", "01000000001", "ahmed@example.com", today.isoformat(), "approved"),
        ("Mona Ali", "01000000002", None, today.isoformat(), "approved"),
        ("Omar Samy", "01000000003", None, today.isoformat(), "approved"),
    ]
    ids = []
    for m in members:
        mid = db.execute(
            "INSERT INTO members(full_name, phone, email, join_date, status) VALUES(?,?,?,?,?)",
            m,
        )
        ids.append(mid)

    last_month = today.replace(day=1) - timedelta(days=1)
    payments = [
        (ids[0], "Ahmed Hassan", 500.0, today.isoformat(), MONTHLY, today.year, today.month, "cash", "Sample payment", now),
        (ids[0], "Ahmed Hassan", 500.0, last_month.isoformat(), MONTHLY, last_month.year, last_month.month, "cash", None, now),
        (ids[1], "Mona Ali", 500.0, today.isoformat(), MONTHLY, today.year, today.month, "bkash", None, now),
        (ids[2], "Omar Samy", 2000.0, today.isoformat(), ONE_TIME, None, None, "bank", "Sample donation", now),
    ]
    db.executemany(
        """
        INSERT INTO payments(member_id, member_name, amount, date, kind, year, month, method, notes, created_at)
        VALUES(?,?,?,?,?,?,?,?,?,?)
        """,
        payments,
    )
