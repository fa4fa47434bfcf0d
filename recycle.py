"""
recycle.py
Recycle bin: soft delete, restore (single rows and whole batches), retention cleanup.

A soft-deleted row is copied as JSON into recycle_bin and removed from its table.
Rows removed together (a year's payments, a member and their payments) share a
batch_id so one restore brings all of them back.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime, timedelta

import db
import settings

logger = logging.getLogger(__name__)

RETENTION_DAYS = 7

RESTORABLE_TABLES = ("members", "payments", "expenses", "donation_requests")

# Item types
PAYMENT = "payment"
MEMBER = "member"
EXPENSE = "expense"
OTHER = "other"
YEAR_CONFIG_REMOVED = "year_config_removed"
MONTH_CONFIG_REMOVED = "month_config_removed"

# Items whose restore also restores the rest of their batch
BATCH_LEADERS = (MEMBER, YEAR_CONFIG_REMOVED, MONTH_CONFIG_REMOVED)


def new_batch_id(prefix: str = "batch") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _check_table(table: str) -> None:
    if table not in RESTORABLE_TABLES:
        raise ValueError(f"Table {table!r} does not support soft delete.")


def soft_delete(
    table: str,
    row_id: int,
    item_type: str,
    name: str,
    deleted_by: str = "admin",
    batch_id: str | None = None,
) -> bool:
    """
    Move one row into the recycle bin. Returns False if the row does not exist.
    """
    _check_table(table)
    with db.get_conn() as conn:
        row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()
        if row is None:
            logger.warning("Soft delete skipped: %s #%s not found", table, row_id)
            return False
        conn.execute(
            """
            INSERT INTO recycle_bin(original_id, original_table, item_type, name, data, batch_id, deleted_by, deleted_at)
            VALUES(?,?,?,?,?,?,?,?)
            """,
            (row_id, table, item_type, name, json.dumps(dict(row)), batch_id, deleted_by, db.now_iso()),
        )
        conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
    return True


def log_system_action(
    name: str,
    description: str,
    item_type: str = OTHER,
    batch_id: str | None = None,
    data: dict | None = None,
) -> int:
    """
    Record an action with no row of its own (e.g. removing a collection year) so it
    shows up in the bin and can be undone.
    """
    payload = dict(data or {})
    payload["description"] = description
    return db.execute(
        """
        INSERT INTO recycle_bin(original_id, original_table, item_type, name, data, batch_id, deleted_by, deleted_at)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        (None, "system_logs", item_type, name, json.dumps(payload), batch_id, "admin", db.now_iso()),
    )


def list_items() -> list:
    return db.fetch_all("SELECT * FROM recycle_bin ORDER BY deleted_at DESC, id DESC")


def get_item(item_id: int):
    return db.fetch_one("SELECT * FROM recycle_bin WHERE id = ?", (item_id,))


def _reinsert(conn, item) -> None:
    table = item["original_table"]
    _check_table(table)
    data = json.loads(item["data"])
    cols = list(data.keys())
    placeholders = ",".join("?" for _ in cols)
    conn.execute(
        f"INSERT OR REPLACE INTO {table}({','.join(cols)}) VALUES({placeholders})",
        tuple(data[c] for c in cols),
    )
    conn.execute("DELETE FROM recycle_bin WHERE id = ?", (item["id"],))


def restore(item_id: int) -> bool:
    item = get_item(item_id)
    if item is None:
        raise LookupError(f"Recycle item {item_id} not found")

    item_type = item["item_type"]
    data = json.loads(item["data"])

    if item_type == YEAR_CONFIG_REMOVED:
        settings.add_year(int(data["year"]), months=data.get("months"))
    elif item_type == MONTH_CONFIG_REMOVED:
        settings.set_month_enabled(int(data["year"]), int(data["month"]), True, cascade=False)

    with db.get_conn() as conn:
        if item["original_table"] != "system_logs":
            _reinsert(conn, item)
        else:
            conn.execute("DELETE FROM recycle_bin WHERE id = ?", (item_id,))

        if item_type in BATCH_LEADERS and item["batch_id"]:
            batch = conn.execute(
                "SELECT * FROM recycle_bin WHERE batch_id = ? AND id != ?",
                (item["batch_id"], item_id),
            ).fetchall()
            for other in batch:
                _reinsert(conn, other)
            logger.info("Restored %s with %d batched rows", item["name"], len(batch))
    return True


def permanent_delete(item_id: int) -> bool:
    return db.execute_rowcount("DELETE FROM recycle_bin WHERE id = ?", (item_id,)) > 0


def cleanup_old_items(today: date | None = None) -> int:
    """Drop bin items older than RETENTION_DAYS. Returns how many were removed."""
    today = today or date.today()
    cutoff = datetime.combine(today - timedelta(days=RETENTION_DAYS), datetime.min.time())
    removed = db.execute_rowcount(
        "DELETE FROM recycle_bin WHERE deleted_at <= ?",
        (cutoff.isoformat(timespec="seconds"),),
    )
    if removed:
        logger.info("Cleaned up %d old recycle bin items", removed)
    return removed
