"""
notifications.py
Member notifications, announcements and the admin activity log.

These are side effects of admin workflows: a failure here is logged and never
fails the operation that triggered it.
"""

from __future__ import annotations

import logging

import db
from errors import DataAccessError
from models import APPROVED

logger = logging.getLogger(__name__)

MAX_LOGS = 100

INFO = "info"
SUCCESS = "success"
WARNING = "warning"


def notify(member_id, title: str, message: str, level: str = INFO) -> bool:
    if member_id is None:
        return False
    try:
        db.execute(
            "INSERT INTO notifications(member_id, title, message, level, read, created_at) VALUES(?,?,?,?,0,?)",
            (int(member_id), title, message, level, db.now_iso()),
        )
        return True
    except DataAccessError:
        logger.exception("Failed to notify member %s (%s)", member_id, title)
        return False


def announce(title: str, message: str, level: str = INFO, admin: str = "Admin") -> int:
    """Send a notification to every approved member and keep it in the history. Returns how many were sent."""
    try:
        rows = db.fetch_all("SELECT id FROM members WHERE status = ?", (APPROVED,))
    except DataAccessError:
        logger.exception("Failed to load members for announcement %r", title)
        return 0
    sent = sum(1 for r in rows if notify(r["id"], title, message, level))
    try:
        db.execute(
            "INSERT INTO announcement_history(title, message, level, recipients, sent_by, created_at) VALUES(?,?,?,?,?,?)",
            (title, message, level, sent, admin or "Admin", db.now_iso()),
        )
    except DataAccessError:
        logger.exception("Failed to record announcement %r", title)
    return sent


def list_announcements(limit: int = MAX_LOGS) -> list:
    return db.fetch_all("SELECT * FROM announcement_history ORDER BY id DESC LIMIT ?", (limit,))


def delete_announcement(announcement_id: int) -> bool:
    """Drop a history entry; members keep the notifications they received."""
    return db.execute_rowcount("DELETE FROM announcement_history WHERE id = ?", (announcement_id,)) > 0


def list_notifications(member_id: int, unread_only: bool = False) -> list:
    sql = "SELECT * FROM notifications WHERE member_id = ?"
    if unread_only:
        sql += " AND read = 0"
    sql += " ORDER BY created_at DESC, id DESC"
    return db.fetch_all(sql, (member_id,))


def unread_count(member_id: int) -> int:
    return db.fetch_one("SELECT COUNT(*) AS c FROM notifications WHERE member_id = ? AND read = 0", (member_id,))["c"]


def mark_read(notification_id: int) -> None:
    db.execute("UPDATE notifications SET read = 1 WHERE id = ?", (notification_id,))


def mark_all_read(member_id: int) -> int:
    return db.execute_rowcount("UPDATE notifications SET read = 1 WHERE member_id = ? AND read = 0", (member_id,))


def delete_notification(notification_id: int) -> bool:
    return db.execute_rowcount("DELETE FROM notifications WHERE id = ?", (notification_id,)) > 0


def clear_notifications(member_id: int) -> int:
    return db.execute_rowcount("DELETE FROM notifications WHERE member_id = ?", (member_id,))


def log_activity(admin_name: str, action: str, details: str) -> None:
    """Append to the activity log, keeping only the newest MAX_LOGS entries."""
    try:
        with db.get_conn() as conn:
            conn.execute(
                "INSERT INTO activity_logs(admin_name, action, details, created_at) VALUES(?,?,?,?)",
                (admin_name or "Admin", action, details, db.now_iso()),
            )
            conn.execute(
                """
                DELETE FROM activity_logs WHERE id NOT IN (
                    SELECT id FROM activity_logs ORDER BY id DESC LIMIT ?
                )
                """,
                (MAX_LOGS,),
            )
    except DataAccessError:
        logger.exception("Failed to log activity %r", action)


def list_activity(limit: int = MAX_LOGS) -> list:
    return db.fetch_all("SELECT * FROM activity_logs ORDER BY id DESC LIMIT ?", (limit,))
