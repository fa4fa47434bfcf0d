"""
backup.py
Database backup (JSON export), restore and reset.
"""

from __future__ import annotations

import json
import logging

import db
from errors import ValidationError

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1


def export_backup() -> bytes:
    """Every data table plus the collection settings, as UTF-8 JSON."""
    tables = {t: [dict(r) for r in db.fetch_all(f"SELECT * FROM {t} ORDER BY id")] for t in db.DATA_TABLES}
    settings_rows = db.fetch_all("SELECT key, value FROM app_settings WHERE key != 'force_password_change'")
    payload = {
        "version": BACKUP_VERSION,
        "created_at": db.now_iso(),
        "tables": tables,
        "settings": {r["key"]: r["value"] for r in settings_rows},
    }
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def _load(data: bytes) -> dict:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Backup file is not valid JSON: {exc}") from None
    if not isinstance(payload, dict) or not isinstance(payload.get("tables"), dict):
        raise ValidationError("Backup file has no tables section.")
    unknown = set(payload["tables"]) - set(db.DATA_TABLES)
    if unknown:
        raise ValidationError(f"Backup contains unknown tables: {', '.join(sorted(unknown))}")
    return payload


def restore_backup(data: bytes) -> dict[str, int]:
    """
    Replace the contents of every table in the backup. Returns rows restored per
    table. Runs in one transaction: a bad row leaves the database untouched.
    """
    payload = _load(data)
    counts: dict[str, int] = {}
    with db.get_conn() as conn:
        for table, rows in payload["tables"].items():
            known = {r["name"] for r in conn.execute(f"PRAGMA table_info({table})")}
            conn.execute(f"DELETE FROM {table}")
            for row in rows:
                cols = list(row.keys())
                if not set(cols) <= known:
                    raise ValidationError(f"Backup rows for {table} have unknown columns: {sorted(set(cols) - known)}")
                conn.execute(
                    f"INSERT INTO {table}({','.join(cols)}) VALUES({','.join('?' for _ in cols)})",
                    tuple(row[c] for c in cols),
                )
            counts[table] = len(rows)
        for key, value in (payload.get("settings") or {}).items():
            conn.execute(
                "INSERT INTO app_settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )
    logger.info("Restored backup: %s", counts)
    return counts


def reset_database() -> None:
    """Delete all fund data. Admin accounts and settings are kept."""
    with db.get_conn() as conn:
        for table in db.DATA_TABLES:
            conn.execute(f"DELETE FROM {table}")
    logger.warning("Database reset: all fund data deleted")
