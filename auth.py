"""
auth.py
Admin accounts: bcrypt password hashes, login and password changes.
"""

from __future__ import annotations

import logging

import bcrypt

import db
from errors import ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# bcrypt ignores everything past this many bytes (and newer releases refuse it)
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_secret(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for a stored hash bcrypt cannot read."""
    try:
        return bcrypt.checkpw(_secret(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored admin password hash is not a bcrypt hash")
        return False


def get_admin_by_username(username: str):
    return db.fetch_one("SELECT * FROM admin_users WHERE username = ?", (username,))


def login(username: str, password: str) -> bool:
    account = get_admin_by_username(username.strip())
    ok = account is not None and verify_password(password, account["password_hash"])
    if not ok:
        logger.info("Failed login for %r", username)
    return ok


def validate_new_password(new1: str, new2: str) -> str | None:
    """Returns an error message, or None if the new password is acceptable."""
    if len(new1) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    if new1 != new2:
        return "Passwords do not match."
    return None


def change_password(username: str, new_password: str, confirm: str | None = None) -> None:
    """
    Store a new hash for the admin and lift the forced password change.

    Raises ValidationError when the password is too short or the confirmation
    differs, and LookupError for an unknown admin.
    """
    error = validate_new_password(new_password, new_password if confirm is None else confirm)
    if error:
        raise ValidationError(error)
    updated = db.execute_rowcount(
        "UPDATE admin_users SET password_hash = ? WHERE username = ?",
        (hash_password(new_password), username),
    )
    if updated == 0:
        raise LookupError(f"Admin {username!r} not found")
    db.clear_force_password_change()
    logger.info("Password changed for admin %r", username)
