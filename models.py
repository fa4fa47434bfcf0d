"""
models.py
Lightweight domain helpers (dataclasses, status constants, collection calendar).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

ALL_MONTHS: tuple[int, ...] = tuple(range(1, 13))
MONTH_LABELS = {m: calendar.month_abbr[m] for m in ALL_MONTHS}

# Payment kinds
MONTHLY = "monthly"
ONE_TIME = "one-time"
PAYMENT_KINDS = (MONTHLY, ONE_TIME)

PAYMENT_METHODS = ("cash", "bkash", "nagad", "bank")

# Period statuses, evaluated in this order
PAID = "paid"
FUTURE = "future"
OVERDUE = "overdue"
DUE_SOON = "due-soon"

# Donation request / member registration statuses
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"


@dataclass(frozen=True, order=True)
class Period:
    year: int
    month: int

    @property
    def label(self) -> str:
        return f"{MONTH_LABELS.get(self.month, '?')} {self.year}"


@dataclass(frozen=True)
class Member:
    id: int | None
    full_name: str
    phone: str
    email: str | None
    join_date: str
    status: str  # pending / approved / rejected

    @classmethod
    def from_row(cls, row) -> "Member":
        return cls(
            id=row["id"],
            full_name=row["full_name"],
            phone=row["phone"],
            email=row["email"],
            join_date=row["join_date"],
            status=row["status"],
        )


@dataclass(frozen=True)
class Payment:
    id: int | None
    member_id: int | None
    member_name: str
    amount: float
    date: str
    kind: str  # monthly / one-time
    year: int | None = None
    month: int | None = None
    method: str | None = None
    transaction_id: str | None = None
    notes: str | None = None
    created_at: str | None = None
    hidden_from_profile: bool = False

    @property
    def period(self) -> Period | None:
        if self.kind != MONTHLY or self.year is None or self.month is None:
            return None
        return Period(int(self.year), int(self.month))

    @classmethod
    def from_row(cls, row) -> "Payment":
        return cls(
            id=row["id"],
            member_id=row["member_id"],
            member_name=row["member_name"],
            amount=row["amount"],
            date=row["date"],
            kind=row["kind"],
            year=row["year"],
            month=row["month"],
            method=row["method"],
            transaction_id=row["transaction_id"],
            notes=row["notes"],
            created_at=row["created_at"],
            hidden_from_profile=bool(row["hidden_from_profile"]),
        )


@dataclass(frozen=True)
class DonationRequest:
    id: int | None
    member_id: int | None
    member_name: str
    amount: float
    kind: str
    status: str
    year: int | None = None
    months: tuple[int, ...] = ()
    allocations: Mapping[int, float | None] = field(default_factory=dict, hash=False)
    method: str | None = None
    transaction_id: str | None = None
    notes: str | None = None
    date: str | None = None
    created_at: str | None = None
    rejection_reason: str | None = None
    plan: Mapping[int, float] = field(default_factory=dict, hash=False)  # split fixed at first approval
    applied: Mapping[int, int] = field(default_factory=dict, hash=False)  # month -> payment id

    def __post_init__(self):
        object.__setattr__(self, "plan", MappingProxyType(dict(self.plan)))
        object.__setattr__(self, "allocations", MappingProxyType(dict(self.allocations)))
        object.__setattr__(self, "applied", MappingProxyType(dict(self.applied)))

    @property
    def partially_applied(self) -> bool:
        """Approval started writing payments but some months are still missing."""
        return bool(self.plan) and self.status == PENDING


@dataclass(frozen=True)
class Expense:
    id: int | None
    title: str
    category: str
    amount: float
    date: str
    notes: str | None
    recorded_by: str


@dataclass(frozen=True)
class CellStatus:
    status: str
    amount: float = 0.0


@dataclass(frozen=True)
class CollectionConfig:
    """
    Snapshot of the active collection calendar.

    A year without an explicit month list has all 12 months active.
    """

    years: tuple[int, ...] = ()
    months: Mapping[int, tuple[int, ...]] = field(default_factory=dict, hash=False)
    currency_symbol: str = "৳"

    def __post_init__(self):
        object.__setattr__(self, "years", tuple(self.years))
        object.__setattr__(self, "months", MappingProxyType({y: tuple(ms) for y, ms in self.months.items()}))

    def active_months(self, year: int) -> tuple[int, ...]:
        if year not in self.years:
            return ()
        return tuple(sorted(self.months.get(year, ALL_MONTHS)))

    def is_active(self, year: int, month: int) -> bool:
        return month in self.active_months(year)

    def periods(self, year: int | None = None) -> list[Period]:
        years = [year] if year is not None else sorted(self.years)
        return [Period(y, m) for y in years for m in self.active_months(y)]

    def with_year(self, year: int) -> "CollectionConfig":
        years = tuple(sorted(set(self.years) | {year}))
        months = dict(self.months)
        months[year] = ALL_MONTHS
        return replace(self, years=years, months=months)

    def without_year(self, year: int) -> "CollectionConfig":
        months = {y: ms for y, ms in self.months.items() if y != year}
        return replace(self, years=tuple(y for y in self.years if y != year), months=months)

    def with_month(self, year: int, month: int, enabled: bool) -> "CollectionConfig":
        current = set(self.months.get(year, ALL_MONTHS))
        if enabled:
            current.add(month)
        else:
            current.discard(month)
        months = dict(self.months)
        months[year] = tuple(sorted(current))
        return replace(self, months=months)
