"""Bill due-date projector — pure business logic.

Given a recurring bill (due day of month) and a reference date, computes
the next due date and whether the payment for that period is pending,
paid or overdue.

Short months: a due day that does not exist in a month (e.g. 31 in
February) is clamped to the month's last day instead of rolling over.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import calendar
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from familysync.data.models import PaymentStatus, to_document

logger = logging.getLogger(__name__)


@dataclass
class DueDateProjection:
    """Next occurrence of a bill and its payment state."""

    bill_id: str
    due_date: date
    days_until_due: int
    status: PaymentStatus
    payment: dict | None = None

    @property
    def is_overdue(self) -> bool:
        return self.status == PaymentStatus.OVERDUE

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID


def clamp_due_day(year: int, month: int, due_day: int) -> date:
    """date(year, month, due_day), clamped into the month (1..last day)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(due_day, 1), last_day))


def _add_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def _days_between(due: date, reference: date | datetime) -> int:
    """ceil((due - reference) / 1 day); a datetime reference counts from due's midnight."""
    if isinstance(reference, datetime):
        due_start = datetime(due.year, due.month, due.day, tzinfo=reference.tzinfo)
        return math.ceil((due_start - reference) / timedelta(days=1))
    return (due - reference).days


def next_due_date(due_day: int, reference: date | datetime) -> date:
    """This month's due date, or next month's if it has already passed."""
    ref_day = reference.date() if isinstance(reference, datetime) else reference
    candidate = clamp_due_day(ref_day.year, ref_day.month, due_day)

    if isinstance(reference, datetime):
        passed = datetime(
            candidate.year, candidate.month, candidate.day, tzinfo=reference.tzinfo,
        ) < reference
    else:
        passed = candidate < reference

    if passed:
        year, month = _add_month(candidate.year, candidate.month)
        candidate = clamp_due_day(year, month, due_day)
    return candidate


def _payment_for(bill_id: str, due: date, payments: Iterable[Any]) -> dict | None:
    due_iso = due.isoformat()
    for raw in payments:
        payment = to_document(raw)
        if payment.get("bill_id") == bill_id and payment.get("due_date") == due_iso:
            return payment
    return None


def project_next_due_date(
    bill: Mapping[str, Any] | Any,
    reference: date | datetime,
    payments: Iterable[Any] = (),
) -> DueDateProjection:
    """Project the bill's next due date relative to reference.

    Every frequency uses the monthly due-day cadence.
    """
    doc = to_document(bill)
    bill_id = doc.get("id", "")
    due = next_due_date(int(doc.get("due_day") or 1), reference)
    payment = _payment_for(bill_id, due, payments)

    if payment is not None and payment.get("status") == PaymentStatus.PAID:
        status = PaymentStatus.PAID
    elif payment is not None and payment.get("status") == PaymentStatus.OVERDUE:
        status = PaymentStatus.OVERDUE
    else:
        status = PaymentStatus.PENDING

    return DueDateProjection(
        bill_id=bill_id,
        due_date=due,
        days_until_due=_days_between(due, reference),
        status=status,
        payment=payment,
    )


def upcoming_payments(
    bills: Iterable[Any],
    payments: Iterable[Any],
    reference: date | datetime,
) -> list[DueDateProjection]:
    """Projections for all active bills, soonest first."""
    payment_list = list(payments)
    projections = [
        project_next_due_date(bill, reference, payment_list)
        for bill in bills
        if to_document(bill).get("is_active", True)
    ]
    projections.sort(key=lambda p: p.days_until_due)
    return projections


def monthly_total(bills: Iterable[Any]) -> float:
    """Sum of fixed amounts of active bills (variable bills count as 0)."""
    total = 0.0
    for raw in bills:
        bill = to_document(raw)
        if not bill.get("is_active", True) or bill.get("is_variable_amount"):
            continue
        total += float(bill.get("amount") or 0)
    return total


def refresh_payment_statuses(payments: Iterable[Any], today: date) -> list[dict]:
    """Pending payments whose due date has passed, with status set to overdue.

    Returns only the changed documents; the input is not modified.
    """
    changed = []
    for raw in payments:
        payment = to_document(raw)
        if payment.get("status") != PaymentStatus.PENDING:
            continue
        try:
            due = date.fromisoformat(payment.get("due_date") or "")
        except ValueError:
            logger.warning("Payment %s has an unreadable due_date", payment.get("id"))
            continue
        if due < today:
            changed.append({**payment, "status": PaymentStatus.OVERDUE.value})
    return changed
