"""
settings.py
Collection calendar persistence: which years / months are open for dues.

The calendar is stored as JSON in app_settings and handed to the dues engine as
an immutable CollectionConfig snapshot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import date

import db
import recycle
from models import ALL_MONTHS, MONTH_LABELS, MONTHLY, CollectionConfig

logger = logging.getLogger(__name__)

CONFIG_KEY = "collection_config"
DEFAULT_CURRENCY = "৳"


def default_config(today: date | None = None) -> CollectionConfig:
    year = (today or date.today()).year
    return CollectionConfig(years=(year - 1, year, year + 1), months={}, currency_symbol=DEFAULT_CURRENCY)


def _to_json(config: CollectionConfig) -> str:
    return json.dumps(
        {
            "years": list(config.years),
            "months": {str(y): list(ms) for y, ms in config.months.items()},
            "currency_symbol": config.currency_symbol,
        }
    )


def _from_json(raw: str) -> CollectionConfig:
    data = json.loads(raw)
    return CollectionConfig(
        years=tuple(sorted(int(y) for y in data.get("years", []))),
        months={int(y): tuple(sorted(int(m) for m in ms)) for y, ms in (data.get("months") or {}).items()},
        currency_symbol=data.get("currency_symbol") or DEFAULT_CURRENCY,
    )


def load_config() -> CollectionConfig:
    raw = db.get_setting(CONFIG_KEY)
    if raw is None:
        config = default_config()
        save_config(config)
        return config
    return _from_json(raw)


def save_config(config: CollectionConfig) -> None:
    db.set_setting(CONFIG_KEY, _to_json(config))


def set_currency_symbol(symbol: str) -> CollectionConfig:
    config = replace(load_config(), currency_symbol=symbol.strip() or DEFAULT_CURRENCY)
    save_config(config)
    return config


def add_year(year: int, months: list[int] | None = None) -> CollectionConfig:
    """Open a year for collection, with all 12 months unless a subset is given."""
    config = load_config()
    if year in config.years and months is None:
        return config
    config = config.with_year(year)
    if months is not None:
        config = replace(config, months={**config.months, year: tuple(sorted(int(m) for m in months))})
    save_config(config)
    return config


def remove_year(year: int) -> CollectionConfig:
    """
    Close a year. Every monthly payment recorded for it goes to the recycle bin
    as one batch, restorable together with the year itself.
    """
    config = load_config()
    batch_id = recycle.new_batch_id("batch-year")
    rows = db.fetch_all("SELECT id FROM payments WHERE kind = ? AND year = ?", (MONTHLY, year))
    for r in rows:
        recycle.soft_delete("payments", r["id"], recycle.PAYMENT, f"Monthly: Year {year}", batch_id=batch_id)

    months = list(config.active_months(year)) or list(ALL_MONTHS)
    config = config.without_year(year)
    save_config(config)
    recycle.log_system_action(
        f"Year {year} Configuration",
        f"Removed configuration for year {year} and {len(rows)} payments.",
        recycle.YEAR_CONFIG_REMOVED,
        batch_id=batch_id,
        data={"year": year, "months": months, "count": len(rows)},
    )
    logger.info("Removed collection year %s (%d payments moved to bin)", year, len(rows))
    return config


def set_month_enabled(year: int, month: int, enabled: bool, cascade: bool = True) -> CollectionConfig:
    """
    Enable or disable one month. Disabling moves that month's payments to the
    recycle bin unless cascade is False.
    """
    config = load_config()
    removed = 0
    if not enabled and cascade:
        batch_id = recycle.new_batch_id("batch-month")
        rows = db.fetch_all(
            "SELECT id FROM payments WHERE kind = ? AND year = ? AND month = ?",
            (MONTHLY, year, month),
        )
        label = f"{MONTH_LABELS[month]} {year}"
        for r in rows:
            recycle.soft_delete("payments", r["id"], recycle.PAYMENT, f"Monthly: {label}", batch_id=batch_id)
        removed = len(rows)
        if removed:
            recycle.log_system_action(
                f"{label} Configuration",
                f"Disabled month {label} and removed {removed} payments.",
                recycle.MONTH_CONFIG_REMOVED,
                batch_id=batch_id,
                data={"year": year, "month": month, "count": removed},
            )

    config = config.with_month(year, month, enabled)
    save_config(config)
    logger.info("Month %s-%02d %s (%d payments moved to bin)", year, month, "enabled" if enabled else "disabled", removed)
    return config
