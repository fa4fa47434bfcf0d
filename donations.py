"""
donations.py
Donation requests: a member claims a payment, an admin verifies it.

Approving a monthly request runs it through the dues engine, which requires
the allocated months to add up to the declared amount.
"""

from __future__ import annotations

import json
import logging
from datetime import date

import db
import dues
import finance
import notifications
from errors import NoPeriodSelected, RequestNotPending, ValidationError
from models import APPROVED, MONTHLY, ONE_TIME, PAYMENT_KINDS, PENDING, REJECTED, CollectionConfig, DonationRequest, Payment
from utils import parse_allocations, parse_amount

logger = logging.getLogger(__name__)


def _int_keys(raw: str | None) -> dict:
    return {int(k): v for k, v in json.loads(raw).items()} if raw else {}


def _from_row(row) -> DonationRequest:
    return DonationRequest(
        id=row["id"],
        member_id=row["member_id"],
        member_name=row["member_name"],
        amount=row["amount"],
        kind=row["kind"],
        status=row["status"],
        year=row["year"],
        months=tuple(json.loads(row["months"])) if row["months"] else (),
        allocations=_int_keys(row["allocations"]),
        method=row["method"],
        transaction_id=row["transaction_id"],
        notes=row["notes"],
        date=row["date"],
        created_at=row["created_at"],
        rejection_reason=row["rejection_reason"],
        plan=_int_keys(row["allocation_plan"]),
        applied=_int_keys(row["applied_months"]),
    )


def submit_request(
    member_id,
    member_name: str,
    amount,
    kind: str,
    year: int | None = None,
    months=None,
    allocations: dict | None = None,
    method: str | None = None,
    transaction_id: str | None = None,
    notes: str | None = None,
    paid_on: str | None = None,
) -> int:
    if kind not in PAYMENT_KINDS:
        raise ValidationError(f"Unknown donation type {kind!r}.")
    value = parse_amount(amount, allow_zero=False)

    month_list: list[int] = []
    parsed_allocations: dict[int, float | None] = {}
    if kind == MONTHLY:
        month_list = sorted({int(m) for m in (months or [])})
        if not month_list:
            raise NoPeriodSelected()
        if year is None:
            raise ValidationError("Please choose the year for a monthly donation.")
        parsed_allocations = {m: v for m, v in parse_allocations(allocations).items() if m in month_list}

    return db.execute(
        """
        INSERT INTO donation_requests(member_id, member_name, amount, kind, year, months, allocations,
            method, transaction_id, notes, date, status, created_at)
        VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?)
        """,
        (
            member_id,
            member_name,
            value,
            kind,
            int(year) if kind == MONTHLY else None,
            json.dumps(month_list) if kind == MONTHLY else None,
            json.dumps({str(m): v for m, v in parsed_allocations.items()}) if parsed_allocations else None,
            method,
            (transaction_id or "").strip() or None,
            (notes or "").strip() or None,
            paid_on or date.today().isoformat(),
            PENDING,
            db.now_iso(),
        ),
    )


def get_request(request_id: int) -> DonationRequest | None:
    row = db.fetch_one("SELECT * FROM donation_requests WHERE id = ?", (request_id,))
    return _from_row(row) if row else None


def list_requests(status: str | None = None) -> list[DonationRequest]:
    sql = "SELECT * FROM donation_requests"
    params: tuple = ()
    if status:
        sql += " WHERE status = ?"
        params = (status,)
    sql += " ORDER BY created_at DESC, id DESC"
    return [_from_row(r) for r in db.fetch_all(sql, params)]


def _pending(request_id: int) -> DonationRequest:
    request = get_request(request_id)
    if request is None:
        raise LookupError(f"Donation request {request_id} not found")
    if request.status != PENDING:
        raise RequestNotPending(request_id, request.status)
    return request


def _mark_approved(request: DonationRequest, config: CollectionConfig, admin: str) -> None:
    db.execute(
        "UPDATE donation_requests SET status = ?, decided_at = ? WHERE id = ?",
        (APPROVED, db.now_iso(), request.id),
    )
    notifications.log_activity(
        admin,
        "Approve Donation",
        f"Approved {request.kind} donation of {config.currency_symbol}{request.amount:g} from {request.member_name}",
    )
    notifications.notify(
        request.member_id,
        "Donation Approved",
        f"Your donation of {config.currency_symbol}{request.amount:g} has been verified and applied.",
        notifications.SUCCESS,
    )


def _record_progress(request_id: int, plan: dict, written: dict) -> None:
    db.execute(
        "UPDATE donation_requests SET allocation_plan = ?, applied_months = ? WHERE id = ?",
        (
            json.dumps({str(m): v for m, v in plan.items()}),
            json.dumps({str(m): pid for m, pid in written.items()}),
            request_id,
        ),
    )


def approve_request(
    request_id: int,
    config: CollectionConfig,
    override_allocations: dict | None = None,
    admin: str = "Admin",
):
    """
    Turn a pending request into payments.

    Monthly requests return the dues.AllocationResult. The split and the months
    written are stored on the request; if some months failed, the request stays
    pending and approving it again (or retry_failed) writes only the rest.
    One-time requests return the new payment id.
    """
    request = _pending(request_id)

    if request.kind == ONE_TIME:
        payment_id = finance.create_payment(
            Payment(
                id=None,
                member_id=request.member_id,
                member_name=request.member_name,
                amount=request.amount,
                date=request.date or date.today().isoformat(),
                kind=ONE_TIME,
                method=request.method,
                transaction_id=request.transaction_id,
                notes=request.notes,
            ),
            admin=admin,
        )
        _mark_approved(request, config, admin)
        return payment_id

    if request.partially_applied:
        if override_allocations is not None:
            raise ValidationError(
                f"Donation request {request_id} is already partly applied; its split can no longer be changed."
            )
        return retry_failed(request_id, config, admin=admin)

    allocations = override_allocations if override_allocations is not None else request.allocations
    result = dues.apply_allocation(
        request.member_id,
        request.member_name,
        int(request.year),
        request.months,
        request.amount,
        config,
        manual_allocations=allocations,
        strict_total=True,
        paid_on=request.date,
        method=request.method,
        transaction_id=request.transaction_id,
        notes=request.notes or "Donation request",
        send_notifications=False,
    )
    _record_progress(request.id, result.allocations, result.written)
    if result.ok:
        _mark_approved(request, config, admin)
    else:
        logger.error("Donation request %s partially applied; failed months: %s", request_id, sorted(result.failed))
    return result


def retry_failed(request_id: int, config: CollectionConfig, admin: str = "Admin") -> dues.AllocationResult:
    """Write the months of a partly applied request that have no payment yet."""
    request = _pending(request_id)
    if not request.plan:
        raise ValidationError(f"Donation request {request_id} has not been approved yet.")
    year = int(request.year)
    months = [m for m, amount in sorted(request.plan.items()) if amount > 0 and m not in request.applied]

    written = dict(request.applied)
    failed: dict[int, str] = {}
    already_paid: list[int] = []
    if months:
        retry = dues.apply_allocation(
            request.member_id,
            request.member_name,
            year,
            months,
            sum(request.plan[m] for m in months),
            config,
            manual_allocations={m: request.plan[m] for m in months},
            paid_on=request.date,
            method=request.method,
            transaction_id=request.transaction_id,
            notes=request.notes or "Donation request",
            send_notifications=False,
        )
        written.update(retry.written)
        failed = retry.failed
        already_paid = retry.already_paid
        _record_progress(request.id, request.plan, written)

    result = dues.AllocationResult(
        year=year,
        allocations=dict(request.plan),
        already_paid=already_paid,
        residual=0.0,
        written=written,
        failed=failed,
    )
    if result.ok:
        _mark_approved(request, config, admin)
    else:
        logger.error("Donation request %s still missing months: %s", request_id, sorted(failed))
    return result


def reject_request(request_id: int, reason: str | None = None, admin: str = "Admin") -> None:
    request = _pending(request_id)
    if request.partially_applied:
        raise ValidationError(
            f"Donation request {request_id} already has payments recorded; retry the remaining months instead."
        )
    reason = (reason or "").strip() or None
    db.execute(
        "UPDATE donation_requests SET status = ?, rejection_reason = ?, decided_at = ? WHERE id = ?",
        (REJECTED, reason, db.now_iso(), request_id),
    )
    notifications.log_activity(admin, "Reject Donation", f"Rejected donation of {request.amount:g} from {request.member_name}")
    message = (
        f"Your donation request was rejected. Reason: {reason}"
        if reason
        else "Your donation request was rejected. Please contact admin for details."
    )
    notifications.notify(request.member_id, "Donation Rejected", message, notifications.WARNING)
