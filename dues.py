"""
dues.py
Monthly dues engine: period status, totals, and splitting one amount across months.

Status and totals are pure functions over a list of payments. Allocation writes
go through a store (finance by default) and are not atomic across months: a
failed month is reported back and the months already written stay written.
Two admins editing the same member/month concurrently race; the store's last
write wins.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

import finance
import notifications
from errors import (
    AllocationExceedsTotal,
    AllocationMismatch,
    DataAccessError,
    EmptyAllocation,
    InactivePeriod,
    InvalidAmount,
    NoPeriodSelected,
)
from models import (
    DUE_SOON,
    FUTURE,
    MONTHLY,
    OVERDUE,
    PAID,
    CellStatus,
    CollectionConfig,
    Payment,
    Period,
)
from utils import as_amount, month_label, month_list_label, parse_amount

logger = logging.getLogger(__name__)

# Days into the current month before an unpaid month turns overdue
GRACE_DAYS = 10

# Slack allowed between allocated sum and declared total (float rounding)
ALLOCATION_TOLERANCE = 0.1


def _period_of(payment) -> Period | None:
    if getattr(payment, "kind", None) != MONTHLY:
        return None
    try:
        period = Period(int(payment.year), int(payment.month))
    except (TypeError, ValueError):
        return None
    return period if 1 <= period.month <= 12 else None


def _normalize_months(months) -> list[int]:
    return sorted({int(m) for m in (months or [])})


def index_payments(payments) -> dict[tuple, list[Payment]]:
    """Group monthly payments by (member_id, period). Malformed rows are skipped."""
    index: dict[tuple, list[Payment]] = defaultdict(list)
    for p in payments:
        period = _period_of(p)
        if period is not None:
            index[(p.member_id, period)].append(p)
    return index


# ---------- Status ----------

def _status_without_payment(period: Period, today: date) -> str:
    if (period.year, period.month) > (today.year, today.month):
        return FUTURE
    if (period.year, period.month) < (today.year, today.month):
        return OVERDUE
    return DUE_SOON if today.day <= GRACE_DAYS else OVERDUE


def resolve_status(member_id, period: Period, payments, today: date | None = None) -> CellStatus:
    """
    Classify one member/month cell.

    Any payment for the period makes it paid, with duplicates summed into one
    amount. Otherwise: later months are future, earlier months overdue, and the
    current month is due-soon through day GRACE_DAYS, overdue after.
    """
    today = today or date.today()
    matching = [p for p in payments if p.member_id == member_id and _period_of(p) == period]
    if matching:
        return CellStatus(PAID, sum(as_amount(p.amount) for p in matching))
    return CellStatus(_status_without_payment(period, today))


def resolve_matrix(member_ids, periods, payments, today: date | None = None) -> dict[tuple, CellStatus]:
    """resolve_status for every (member, period) cell, indexing payments once."""
    today = today or date.today()
    index = index_payments(payments)
    cells = {}
    for member_id in member_ids:
        for period in periods:
            matching = index.get((member_id, period))
            if matching:
                cells[(member_id, period)] = CellStatus(PAID, sum(as_amount(p.amount) for p in matching))
            else:
                cells[(member_id, period)] = CellStatus(_status_without_payment(period, today))
    return cells


# ---------- Totals ----------

def member_period_total(payments, member_id, period: Period) -> float:
    return sum(as_amount(p.amount) for p in payments if p.member_id == member_id and _period_of(p) == period)


def period_total(payments, period: Period) -> float:
    return sum(as_amount(p.amount) for p in payments if _period_of(p) == period)


def member_row_total(payments, member_id, periods) -> float:
    return sum(member_period_total(payments, member_id, period) for period in periods)


def grand_total(payments, periods) -> float:
    return sum(period_total(payments, period) for period in periods)


@dataclass(frozen=True)
class MemberSummary:
    total_paid: float
    one_time_total: float
    paid_months: int
    passed_months: int
    months_due: int


def member_summary(member_id, payments, config: CollectionConfig, today: date | None = None) -> MemberSummary:
    today = today or date.today()
    own = [p for p in payments if p.member_id == member_id]
    paid_periods = {_period_of(p) for p in own} - {None}

    passed = 0
    for year in config.years:
        months = config.active_months(year)
        if year < today.year:
            passed += len(months)
        elif year == today.year:
            passed += len([m for m in months if m <= today.month])

    return MemberSummary(
        total_paid=sum(as_amount(p.amount) for p in own),
        one_time_total=sum(as_amount(p.amount) for p in own if p.kind != MONTHLY),
        paid_months=len(paid_periods),
        passed_months=passed,
        months_due=max(0, passed - len(paid_periods)),
    )


# ---------- Allocation ----------

def plan_allocation(total_amount: float, months, manual_allocations: dict | None = None) -> dict[int, float]:
    """
    Decide how much of total_amount goes to each selected month.

    One month takes the whole total. With no manual amounts entered (all blank
    or zero) the total is split evenly. Otherwise manual amounts are used as
    given and blank months get nothing. A negative or non-numeric total or
    allocation raises InvalidAmount.
    """
    months = _normalize_months(months)
    if not months:
        raise NoPeriodSelected()
    total = parse_amount(total_amount)

    if len(months) == 1:
        plan = {months[0]: total}
    else:
        manual = {}
        for m, v in (manual_allocations or {}).items():
            try:
                value = parse_amount(v, allow_blank=True)
            except InvalidAmount as exc:
                raise InvalidAmount(f"Allocation for {month_label(int(m))}: {exc}") from None
            if value is not None:
                manual[int(m)] = value
        entered = sum(manual.get(m, 0.0) for m in months)
        if entered == 0 and total > 0:
            share = total / len(months)
            plan = {m: share for m in months}
        else:
            plan = {m: manual.get(m, 0.0) for m in months}

    allocated = sum(plan.values())
    if allocated == 0:
        raise EmptyAllocation()
    if allocated > total + ALLOCATION_TOLERANCE:
        raise AllocationExceedsTotal(allocated, total)
    return plan


def autofill_last_blank(total_amount: float, months, allocations: dict) -> dict:
    """
    Fill the one remaining blank month with whatever is left of the total.

    Meant for when the user leaves an allocation field; nothing changes unless
    two or more months are selected, exactly one is blank, and the others sum
    to less than the total.
    """
    months = _normalize_months(months)
    result = dict(allocations)
    total = as_amount(total_amount)
    if len(months) < 2 or total <= 0:
        return result
    blanks = [m for m in months if result.get(m) in (None, "")]
    if len(blanks) != 1:
        return result
    filled = sum(as_amount(result.get(m)) for m in months if m != blanks[0])
    if filled < total:
        result[blanks[0]] = total - filled
    return result


@dataclass
class AllocationResult:
    year: int
    allocations: dict[int, float]
    already_paid: list[int]
    residual: float
    written: dict[int, int] = field(default_factory=dict)  # month -> payment id
    failed: dict[int, str] = field(default_factory=dict)  # month -> error

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def warnings(self) -> list[str]:
        out = []
        if self.already_paid:
            out.append(f"Already paid: {month_list_label(self.already_paid)}")
        if self.residual > 0:
            out.append(f"{self.residual:.2f} of the total was not allocated to any month")
        return out


def apply_allocation(
    member_id,
    member_name: str,
    year: int,
    months,
    total_amount: float,
    config: CollectionConfig,
    manual_allocations: dict | None = None,
    *,
    store=finance,
    strict_total: bool = False,
    paid_on: str | None = None,
    method: str | None = None,
    transaction_id: str | None = None,
    notes: str = "Admin added directly",
    send_notifications: bool = True,
) -> AllocationResult:
    """
    Record total_amount against the selected months of one year for a member.

    All validation happens before the first write. Months that already have a
    payment get their first payment incremented; the others get a new payment.
    Each month is written independently and failures are collected in
    result.failed so the caller can retry just those months.
    """
    months = _normalize_months(months)
    if not months:
        raise NoPeriodSelected()
    for m in months:
        if not config.is_active(year, m):
            raise InactivePeriod(year, m)

    plan = plan_allocation(total_amount, months, manual_allocations)
    total = parse_amount(total_amount)
    allocated = sum(plan.values())
    if strict_total and abs(allocated - total) > ALLOCATION_TOLERANCE:
        raise AllocationMismatch(allocated, total)

    existing: dict[int, list[Payment]] = defaultdict(list)
    for p in store.list_payments(member_id=member_id, kind=MONTHLY, year=year):
        period = _period_of(p)
        if period is not None and p.member_id == member_id and period.year == year:
            existing[period.month].append(p)

    residual = total - allocated
    result = AllocationResult(
        year=year,
        allocations=plan,
        already_paid=[m for m in months if existing.get(m)],
        residual=residual if residual > 1e-6 else 0.0,
    )
    if result.residual:
        logger.warning("Allocation for member %s leaves %.2f unrecorded", member_id, result.residual)

    paid_on = paid_on or date.today().isoformat()
    for m in months:
        amount = plan[m]
        if amount <= 0:
            continue
        target = min(existing[m], key=lambda p: p.id) if existing.get(m) else None
        try:
            if target is not None:
                store.increment_payment_amount(target.id, amount, note=notes)
                result.written[m] = target.id
            else:
                result.written[m] = store.create_payment(
                    Payment(
                        id=None,
                        member_id=member_id,
                        member_name=member_name,
                        amount=amount,
                        date=paid_on,
                        kind=MONTHLY,
                        year=year,
                        month=m,
                        method=method,
                        transaction_id=transaction_id,
                        notes=notes,
                    )
                )
        except DataAccessError as exc:
            logger.error("Failed to record %s %s for member %s: %s", month_label(m), year, member_id, exc)
            result.failed[m] = str(exc)
            continue

        if send_notifications:
            label = f"{month_label(m)} {year}"
            if target is not None:
                notifications.notify(
                    member_id,
                    "Payment Updated",
                    f"An admin has added {config.currency_symbol}{amount:g} to your existing payment for {label}.",
                    notifications.INFO,
                )
            else:
                notifications.notify(
                    member_id,
                    "Payment Added",
                    f"An admin has recorded a payment of {config.currency_symbol}{amount:g} for {label}.",
                    notifications.SUCCESS,
                )
    return result


def set_period_amount(
    member_id,
    member_name: str,
    period: Period,
    amount: float | None,
    config: CollectionConfig,
    admin: str = "Admin",
) -> str:
    """
    Inline edit of one matrix cell. Returns "created", "updated", "removed" or
    "unchanged".

    A blank or zero amount moves every payment of the cell to the recycle bin.
    A new amount is written to the first payment and duplicates are binned.
    """
    if not config.is_active(period.year, period.month):
        raise InactivePeriod(period.year, period.month)

    existing = sorted(
        (p for p in finance.list_payments(member_id=member_id, kind=MONTHLY, year=period.year, month=period.month)),
        key=lambda p: p.id,
    )
    symbol = config.currency_symbol

    if not amount:
        if not existing:
            return "unchanged"
        for p in existing:
            finance.delete_payment(p.id, f"Monthly: {member_name} ({period.label})", admin=admin)
        notifications.notify(
            member_id,
            "Payment Removed",
            f"An admin has removed your payment record for {period.label}.",
            notifications.WARNING,
        )
        return "removed"

    if existing:
        if sum(as_amount(p.amount) for p in existing) == amount:
            return "unchanged"
        finance.update_payment_amount(existing[0].id, amount, admin=admin)
        for dup in existing[1:]:
            finance.delete_payment(dup.id, "Duplicate cleanup", admin=admin)
        notifications.notify(
            member_id,
            "Payment Updated",
            f"An admin has updated your {period.label} payment to {symbol}{amount:g}.",
            notifications.INFO,
        )
        return "updated"

    finance.create_payment(
        Payment(
            id=None,
            member_id=member_id,
            member_name=member_name,
            amount=amount,
            date=date.today().isoformat(),
            kind=MONTHLY,
            year=period.year,
            month=period.month,
            notes="Inline entry",
        ),
        admin=admin,
    )
    notifications.notify(
        member_id,
        "Payment Added",
        f"An admin has recorded a new payment of {symbol}{amount:g} for {period.label}.",
        notifications.SUCCESS,
    )
    return "created"
