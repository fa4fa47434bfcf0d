from __future__ import annotations

import db
import members
import notifications
from errors import DataAccessError


def test_notify_and_mark_read(fund_db):
    assert notifications.notify(3, "Payment Added", "Recorded Jan 2024", notifications.SUCCESS)
    (note,) = notifications.list_notifications(3, unread_only=True)
    notifications.mark_read(note["id"])
    assert notifications.list_notifications(3, unread_only=True) == []
    assert len(notifications.list_notifications(3)) == 1


def test_guests_are_not_notified(fund_db):
    assert notifications.notify(None, "t", "m") is False
    assert notifications.list_notifications(None) == []


def test_notification_failure_is_swallowed(fund_db, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise DataAccessError("database is locked")

    monkeypatch.setattr(db, "execute", broken)
    assert notifications.notify(3, "Payment Added", "m") is False
    assert "Failed to notify member 3" in caplog.text


def test_announce_reaches_approved_members_only(fund_db):
    a = members.register_member("A", "1")
    b = members.register_member("B", "2")
    members.register_member("C", "3")
    members.approve_member(a)
    members.approve_member(b)

    assert notifications.announce("Iftar", "Iftar on Friday") == 2
    assert [n["title"] for n in notifications.list_notifications(a)] == ["Iftar", "Welcome"]


def test_activity_log_keeps_newest_entries(fund_db):
    for i in range(notifications.MAX_LOGS + 5):
        notifications.log_activity("admin", "Add Payment", f"entry {i}")

    logs = notifications.list_activity(limit=500)
    assert len(logs) == notifications.MAX_LOGS
    assert logs[0]["details"] == f"entry {notifications.MAX_LOGS + 4}"
    assert logs[-1]["details"] == "entry 5"


def test_mark_all_read_delete_and_clear(fund_db):
    for title in ("One", "Two", "Three"):
        notifications.notify(7, title, "m")
    notifications.notify(8, "Other member", "m")
    assert notifications.unread_count(7) == 3

    assert notifications.mark_all_read(7) == 3
    assert notifications.unread_count(7) == 0
    assert notifications.unread_count(8) == 1

    newest = notifications.list_notifications(7)[0]
    assert notifications.delete_notification(newest["id"])
    assert not notifications.delete_notification(newest["id"])
    assert len(notifications.list_notifications(7)) == 2

    assert notifications.clear_notifications(7) == 2
    assert notifications.list_notifications(7) == []
    assert len(notifications.list_notifications(8)) == 1


def test_announcements_are_kept_in_history(fund_db):
    a = members.register_member("A", "1")
    members.approve_member(a)
    notifications.announce("Iftar", "Iftar on Friday", admin="treasurer")
    notifications.announce("Eid", "Eid collection starts")

    history = notifications.list_announcements()
    assert [(h["title"], h["recipients"]) for h in history] == [("Eid", 1), ("Iftar", 1)]
    assert history[1]["sent_by"] == "treasurer"

    assert notifications.delete_announcement(history[0]["id"])
    assert [h["title"] for h in notifications.list_announcements()] == ["Iftar"]
    assert [n["title"] for n in notifications.list_notifications(a)][:2] == ["Eid", "Iftar"]
