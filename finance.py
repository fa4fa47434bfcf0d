"""
finance.py
Payments and expenses storage, plus the numbers behind the finance dashboard.

The dues engine talks to this module as its store: list_payments,
create_payment and increment_payment_amount.
"""

from __future__ import annotations

import logging

import pandas as pd

import db
import notifications
import recycle
from errors import DataAccessError
from models import MONTHLY, Expense, Payment
from utils import as_amount

logger = logging.getLogger(__name__)

EXPENSE_CATEGORIES = ("Relief", "Education", "Health", "Operations", "Miscellaneous")


# ---------- Payments ----------

def list_payments(
    member_id=None,
    kind: str | None = None,
    year: int | None = None,
    month: int | None = None,
    visible_only: bool = False,
) -> list[Payment]:
    """Payments, newest first. visible_only drops those hidden from the member profile."""
    sql = "SELECT * FROM payments WHERE 1=1"
    params: list = []
    if member_id is not None:
        sql += " AND member_id = ?"
        params.append(member_id)
    if kind is not None:
        sql += " AND kind = ?"
        params.append(kind)
    if year is not None:
        sql += " AND year = ?"
        params.append(year)
    if month is not None:
        sql += " AND month = ?"
        params.append(month)
    if visible_only:
        sql += " AND hidden_from_profile = 0"
    sql += " ORDER BY date DESC, id ASC"
    return [Payment.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def get_payment(payment_id: int) -> Payment | None:
    row = db.fetch_one("SELECT * FROM payments WHERE id = ?", (payment_id,))
    return Payment.from_row(row) if row else None


def create_payment(payment: Payment, admin: str = "Admin") -> int:
    payment_id = db.execute(
        """
        INSERT INTO payments(member_id, member_name, amount, date, kind, year, month,
            method, transaction_id, notes, created_at, hidden_from_profile)
        VALUES(?,?,?,?,?,?,?,?,?,?,?,?)
        """,
        (
            payment.member_id,
            payment.member_name,
            float(payment.amount),
            payment.date,
            payment.kind,
            payment.year if payment.kind == MONTHLY else None,
            payment.month if payment.kind == MONTHLY else None,
            payment.method,
            payment.transaction_id,
            payment.notes,
            payment.created_at or db.now_iso(),
            int(payment.hidden_from_profile),
        ),
    )
    notifications.log_activity(admin, "Add Payment", f"Recorded payment of {payment.amount:g} for {payment.member_name}")
    return payment_id


def increment_payment_amount(payment_id: int, delta: float, note: str | None = None) -> None:
    """Add delta to a payment's amount and make it visible on the member profile again."""
    sql = "UPDATE payments SET amount = amount + ?, hidden_from_profile = 0"
    params: list = [float(delta)]
    if note:
        sql += ", notes = CASE WHEN notes IS NULL OR notes = '' THEN ? ELSE notes || ' | ' || ? END"
        params.extend([note, note])
    sql += " WHERE id = ?"
    params.append(payment_id)
    if db.execute_rowcount(sql, tuple(params)) == 0:
        raise DataAccessError(f"Payment {payment_id} not found")


def update_payment_amount(payment_id: int, amount: float, admin: str = "Admin") -> None:
    if db.execute_rowcount(
        "UPDATE payments SET amount = ?, hidden_from_profile = 0 WHERE id = ?",
        (float(amount), payment_id),
    ) == 0:
        raise DataAccessError(f"Payment {payment_id} not found")
    notifications.log_activity(admin, "Update Payment", f"Updated payment ID {payment_id} (new amount: {amount:g})")


def hide_payment(payment_id: int) -> None:
    """Hide a payment from the member profile history. Totals still count it."""
    if db.execute_rowcount("UPDATE payments SET hidden_from_profile = 1 WHERE id = ?", (payment_id,)) == 0:
        raise DataAccessError(f"Payment {payment_id} not found")


def delete_payment(payment_id: int, name: str = "Payment", batch_id: str | None = None, admin: str = "Admin") -> bool:
    deleted = recycle.soft_delete("payments", payment_id, recycle.PAYMENT, name, deleted_by=admin, batch_id=batch_id)
    if deleted:
        notifications.log_activity(admin, "Delete Payment", f"Removed payment ID {payment_id} ({name})")
    return deleted


# ---------- Expenses ----------

def add_expense(title: str, category: str, amount: float, date: str, notes: str | None = None, recorded_by: str = "Admin") -> int:
    expense_id = db.execute(
        "INSERT INTO expenses(title, category, amount, date, notes, recorded_by, created_at) VALUES(?,?,?,?,?,?,?)",
        (title.strip(), category, float(amount), date, notes, recorded_by, db.now_iso()),
    )
    notifications.log_activity(recorded_by, "Add Expense", f"Recorded expense of {amount:g} for {title.strip()}")
    return expense_id


def list_expenses() -> list[Expense]:
    rows = db.fetch_all("SELECT * FROM expenses ORDER BY date DESC, id DESC")
    return [
        Expense(
            id=r["id"],
            title=r["title"],
            category=r["category"],
            amount=r["amount"],
            date=r["date"],
            notes=r["notes"],
            recorded_by=r["recorded_by"],
        )
        for r in rows
    ]


def delete_expense(expense_id: int, name: str = "Expense", admin: str = "Admin") -> bool:
    deleted = recycle.soft_delete("expenses", expense_id, recycle.EXPENSE, name, deleted_by=admin)
    if deleted:
        notifications.log_activity(admin, "Delete Expense", f"Removed expense ID {expense_id} ({name})")
    return deleted


# ---------- Dashboard ----------

def total_collection() -> float:
    return db.fetch_one("SELECT COALESCE(SUM(amount),0) AS s FROM payments")["s"]


def total_expenses() -> float:
    return db.fetch_one("SELECT COALESCE(SUM(amount),0) AS s FROM expenses")["s"]


def current_balance() -> float:
    return total_collection() - total_expenses()


def monthly_stats() -> pd.DataFrame:
    """Collection vs expense per calendar month (by transaction date), oldest first."""
    payments = pd.DataFrame(
        [dict(r) for r in db.fetch_all("SELECT substr(date, 1, 7) AS month, amount FROM payments")],
        columns=["month", "amount"],
    )
    expenses = pd.DataFrame(
        [dict(r) for r in db.fetch_all("SELECT substr(date, 1, 7) AS month, amount FROM expenses")],
        columns=["month", "amount"],
    )
    collection = payments.groupby("month")["amount"].sum().rename("collection")
    expense = expenses.groupby("month")["amount"].sum().rename("expense")
    df = pd.concat([collection, expense], axis=1).fillna(0.0)
    if df.empty:
        return pd.DataFrame(columns=["month", "collection", "expense"])
    return df.sort_index().reset_index().rename(columns={"index": "month"})


def top_contributors(limit: int = 5) -> list[tuple[int, str, float]]:
    totals: dict[int, list] = {}
    for r in db.fetch_all("SELECT member_id, member_name, amount FROM payments WHERE member_id IS NOT NULL"):
        entry = totals.setdefault(r["member_id"], [r["member_name"], 0.0])
        entry[1] += as_amount(r["amount"])
    ranked = sorted(totals.items(), key=lambda kv: kv[1][1], reverse=True)[:limit]
    return [(member_id, name, total) for member_id, (name, total) in ranked]
