"""
members.py
Member registration, approval and removal.
"""

from __future__ import annotations

from datetime import date

import db
import notifications
import recycle
from errors import ValidationError
from models import APPROVED, PENDING, REJECTED, Member


def validate_member_inputs(full_name: str, phone: str, email: str | None = None) -> list[str]:
    errors: list[str] = []
    if not full_name.strip():
        errors.append("Full name is required.")
    if not phone.strip():
        errors.append("Phone is required.")
    if email and "@" not in email:
        errors.append("Email address looks invalid.")
    return errors


def register_member(full_name: str, phone: str, email: str | None = None, join_date: str | None = None) -> int:
    """New registrations wait for an admin to approve them."""
    errors = validate_member_inputs(full_name, phone, email)
    if errors:
        raise ValidationError(" ".join(errors))
    return db.execute(
        "INSERT INTO members(full_name, phone, email, join_date, status) VALUES(?,?,?,?,?)",
        (full_name.strip(), phone.strip(), (email or "").strip() or None, join_date or date.today().isoformat(), PENDING),
    )


def get_member(member_id: int) -> Member | None:
    row = db.fetch_one("SELECT * FROM members WHERE id = ?", (member_id,))
    return Member.from_row(row) if row else None


def list_members(status: str | None = None, search: str = "") -> list[Member]:
    sql = "SELECT * FROM members WHERE 1=1"
    params = []
    if status:
        sql += " AND status = ?"
        params.append(status)
    if search.strip():
        sql += " AND (full_name LIKE ? OR phone LIKE ? OR email LIKE ?)"
        like = f"%{search.strip()}%"
        params.extend([like, like, like])
    sql += " ORDER BY full_name ASC"
    return [Member.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def _set_status(member_id: int, status: str) -> Member:
    if db.execute_rowcount("UPDATE members SET status = ? WHERE id = ?", (status, member_id)) == 0:
        raise LookupError(f"Member {member_id} not found")
    return get_member(member_id)


def approve_member(member_id: int, admin: str = "Admin") -> Member:
    member = _set_status(member_id, APPROVED)
    notifications.log_activity(admin, "Approve Member", f"Approved registration of {member.full_name}")
    notifications.notify(member_id, "Welcome", "Your registration has been approved.", notifications.SUCCESS)
    return member


def reject_member(member_id: int, admin: str = "Admin") -> Member:
    member = _set_status(member_id, REJECTED)
    notifications.log_activity(admin, "Reject Member", f"Rejected registration of {member.full_name}")
    return member


def delete_member(member_id: int, admin: str = "Admin") -> bool:
    """
    Move a member and all their payments to the recycle bin as one batch.
    Restoring the member brings the payments back.
    """
    member = get_member(member_id)
    if member is None:
        return False
    batch_id = recycle.new_batch_id("batch-member")
    rows = db.fetch_all("SELECT id FROM payments WHERE member_id = ?", (member_id,))
    for r in rows:
        recycle.soft_delete("payments", r["id"], recycle.PAYMENT, f"Payment of {member.full_name}", admin, batch_id)
    recycle.soft_delete("members", member_id, recycle.MEMBER, member.full_name, admin, batch_id)
    notifications.log_activity(admin, "Delete Member", f"Removed {member.full_name} and {len(rows)} payments")
    return True
