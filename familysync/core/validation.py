"""Validation rules — pure checks run before every save.

Each validator takes a raw document (dict or model) and returns a
ValidationResult; none of them raise. Error strings are shown to the
user verbatim. Warnings never make a document invalid.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from familysync.config import settings
from familysync.core.time_range import parse_timestamp
from familysync.data.models import MemberRole, to_document

MAX_NAME_LENGTH = 100


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _result(errors: list[str], warnings: list[str] | None = None) -> ValidationResult:
    return ValidationResult(valid=not errors, errors=errors, warnings=warnings or [])


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _number(value: Any) -> float | None:
    """Coerce form input to a finite number; None when empty or not numeric."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def validate_event(
    event: Mapping[str, Any] | Any,
    *,
    long_event_hours: int | None = None,
) -> ValidationResult:
    """Title, both times, start < end, and at least one assignee.

    Events longer than long_event_hours (default settings.LONG_EVENT_HOURS)
    get a warning, not an error.
    """
    if long_event_hours is None:
        long_event_hours = settings.LONG_EVENT_HOURS
    doc = to_document(event)
    errors: list[str] = []
    warnings: list[str] = []

    if _blank(doc.get("title")):
        errors.append("Title is required")

    start = end = None
    if _blank(doc.get("start_time")):
        errors.append("Start time is required")
    else:
        try:
            start = parse_timestamp(doc["start_time"])
        except (ValueError, TypeError):
            errors.append("Start time is invalid")

    if _blank(doc.get("end_time")):
        errors.append("End time is required")
    else:
        try:
            end = parse_timestamp(doc["end_time"])
        except (ValueError, TypeError):
            errors.append("End time is invalid")

    if start is not None and end is not None:
        try:
            if start >= end:
                errors.append("End time must be after start time")
            elif end - start > timedelta(hours=long_event_hours):
                warnings.append(
                    f"Event duration exceeds {long_event_hours} hours - is this correct?"
                )
        except TypeError:
            errors.append("Start and end time must use the same time zone")

    if not doc.get("assigned_to"):
        errors.append("At least one family member must be assigned")

    return _result(errors, warnings)


def validate_meal(meal: Mapping[str, Any] | Any) -> ValidationResult:
    doc = to_document(meal)
    errors: list[str] = []

    name = doc.get("name")
    if _blank(name) or not isinstance(name, str):
        errors.append("Meal name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append("Meal name must be less than 100 characters")

    prep = _number(doc.get("prep_time"))
    if prep is not None and prep < 0:
        errors.append("Prep time cannot be negative")

    cook = _number(doc.get("cook_time"))
    if cook is not None and cook < 0:
        errors.append("Cook time cannot be negative")

    servings = _number(doc.get("servings"))
    if servings is not None and servings < 1:
        errors.append("Servings must be at least 1")

    return _result(errors)


def validate_note(note: Mapping[str, Any] | Any) -> ValidationResult:
    doc = to_document(note)
    errors: list[str] = []

    title = doc.get("title")
    if _blank(title) or not isinstance(title, str):
        errors.append("Title is required")
    elif len(title) > MAX_NAME_LENGTH:
        errors.append("Title must be less than 100 characters")

    return _result(errors)


def validate_bill(
    bill: Mapping[str, Any] | Any,
    category_ids: Iterable[str] | None = None,
) -> ValidationResult:
    """Name, category, amount (unless variable) and a due day in 1..31.

    When category_ids is given, the bill's category must be one of them.
    """
    doc = to_document(bill)
    errors: list[str] = []

    if _blank(doc.get("name")):
        errors.append("Bill name is required")

    category_id = doc.get("category_id")
    if _blank(category_id):
        errors.append("Category is required")
    elif category_ids is not None and category_id not in set(category_ids):
        errors.append("Unknown category")

    if not doc.get("is_variable_amount"):
        amount = _number(doc.get("amount"))
        if amount is None or amount <= 0:
            errors.append("Amount must be greater than zero")

    due_day = _number(doc.get("due_day"))
    if due_day is None or due_day != int(due_day) or not 1 <= due_day <= 31:
        errors.append("Due day must be between 1 and 31")

    return _result(errors)


def validate_budget(budget: Mapping[str, Any] | Any) -> ValidationResult:
    doc = to_document(budget)
    errors: list[str] = []

    if _blank(doc.get("name")):
        errors.append("Budget name is required")

    categories = [to_document(c) for c in doc.get("categories") or []]
    if not categories:
        errors.append("At least one category is required")
    for category in categories:
        limit = _number(category.get("limit"))
        if limit is not None and limit < 0:
            errors.append("Category limit cannot be negative")
            break

    start, end = doc.get("start_date"), doc.get("end_date")
    if start and end:
        try:
            if date.fromisoformat(end) <= date.fromisoformat(start):
                errors.append("End date must be after start date")
        except ValueError:
            errors.append("Budget dates must be YYYY-MM-DD")

    return _result(errors)


def validate_expense(expense: Mapping[str, Any] | Any) -> ValidationResult:
    doc = to_document(expense)
    errors: list[str] = []

    amount = _number(doc.get("amount"))
    if amount is None or amount <= 0:
        errors.append("Amount must be greater than zero")
    if _blank(doc.get("description")):
        errors.append("Description is required")
    if _blank(doc.get("category_id")):
        errors.append("Category is required")
    if _blank(doc.get("budget_id")):
        errors.append("Budget is required")

    return _result(errors)


def validate_payment(payment: Mapping[str, Any] | Any) -> ValidationResult:
    doc = to_document(payment)
    errors: list[str] = []

    if _blank(doc.get("bill_id")):
        errors.append("Bill is required")
    amount = _number(doc.get("actual_amount"))
    if amount is None or amount <= 0:
        errors.append("Amount must be greater than zero")
    if _blank(doc.get("paid_date")):
        errors.append("Payment date is required")

    return _result(errors)


def validate_member(member: Mapping[str, Any] | Any) -> ValidationResult:
    doc = to_document(member)
    errors: list[str] = []

    if _blank(doc.get("name")):
        errors.append("Name is required")
    role = doc.get("role", MemberRole.PARENT)
    if getattr(role, "value", role) not in [r.value for r in MemberRole]:
        errors.append("Role must be parent or child")

    return _result(errors)
