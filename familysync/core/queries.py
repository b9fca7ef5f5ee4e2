"""
FamilySync — Derived views.

Filtering, grouping and lookups shared by every screen: today's events,
a member's events, "Up Next", meal search, pinned notes, budget spending.
All functions take plain snapshots (lists of documents) and return new
values; references between documents are advisory and may dangle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from familysync.core.errors import NotFoundError
from familysync.core.time_range import parse_timestamp
from familysync.data.models import Collection, NoteType, to_document

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def _docs(items: Iterable[Any]) -> list[dict]:
    return [to_document(item) for item in items]


def find_by_id(items: Iterable[Any], doc_id: str | None) -> dict | None:
    """Return the document with this id, or None."""
    if not doc_id:
        return None
    for doc in _docs(items):
        if doc.get("id") == doc_id:
            return doc
    return None


def require(items: Iterable[Any], doc_id: str, collection: Collection | str) -> dict:
    """Like find_by_id but raises NotFoundError when the id does not resolve."""
    doc = find_by_id(items, doc_id)
    if doc is None:
        name = collection.value if isinstance(collection, Collection) else collection
        raise NotFoundError(name, doc_id)
    return doc


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


def member_name(members: Iterable[Any], member_id: str) -> str:
    """Display name for a member id, "Unknown" if it does not resolve."""
    member = find_by_id(members, member_id)
    if member is None:
        return UNKNOWN
    return member.get("name") or UNKNOWN


def infer_event_color(assigned_to: list[str], members: Iterable[Any]) -> str:
    """Single member → their color; several → "family"; none → "gray"."""
    if not assigned_to:
        return "gray"
    if len(assigned_to) > 1:
        return "family"
    member = find_by_id(members, assigned_to[0])
    return member.get("color", "gray") if member else "gray"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def active_events(events: Iterable[Any]) -> list[dict]:
    """Events that are not tombstoned."""
    return [ev for ev in _docs(events) if not ev.get("deleted_at")]


def _start(event: dict) -> datetime | None:
    try:
        return parse_timestamp(event.get("start_time"))
    except (ValueError, TypeError):
        logger.warning("Event %s has an unreadable start_time", event.get("id"))
        return None


def events_for_date(events: Iterable[Any], target: date) -> list[dict]:
    """Active events starting on the target calendar day, sorted by start."""
    result = []
    for ev in active_events(events):
        start = _start(ev)
        if start is not None and start.date() == target:
            result.append((start, ev))
    result.sort(key=lambda pair: pair[0])
    return [ev for _, ev in result]


def events_for_member(events: Iterable[Any], member_id: str) -> list[dict]:
    return [ev for ev in active_events(events) if member_id in (ev.get("assigned_to") or [])]


def upcoming_events(events: Iterable[Any], now: datetime, count: int = 5) -> list[dict]:
    """The next `count` active events starting after now."""
    future = []
    for ev in active_events(events):
        start = _start(ev)
        if start is None:
            continue
        try:
            if start > now:
                future.append((start, ev))
        except TypeError:
            # naive vs aware; compare wall-clock time
            if start.replace(tzinfo=None) > now.replace(tzinfo=None):
                future.append((start, ev))
    future.sort(key=lambda pair: pair[0].replace(tzinfo=None))
    return [ev for _, ev in future[:count]]


def resolve_meal(event: Mapping[str, Any], meals: Iterable[Any]) -> dict | None:
    """The meal an event links to, or None if unset or deleted."""
    meal_id = event.get("meal")
    meal = find_by_id(meals, meal_id)
    if meal_id and meal is None:
        logger.debug("Event %s links to missing meal %s", event.get("id"), meal_id)
    return meal


# ---------------------------------------------------------------------------
# Meals & notes
# ---------------------------------------------------------------------------


def meals_by_category(meals: Iterable[Any], category: str) -> list[dict]:
    return [m for m in _docs(meals) if m.get("category") == category]


def favorite_meals(meals: Iterable[Any]) -> list[dict]:
    return [m for m in _docs(meals) if m.get("is_favorite")]


def search_meals(meals: Iterable[Any], query: str) -> list[dict]:
    """Case-insensitive match on name, description or any tag."""
    needle = query.strip().lower()
    matches = []
    for meal in _docs(meals):
        haystack = [meal.get("name") or "", meal.get("description") or ""]
        haystack.extend(meal.get("tags") or [])
        if any(needle in text.lower() for text in haystack):
            matches.append(meal)
    return matches


def notes_by_type(notes: Iterable[Any], note_type: NoteType | str) -> list[dict]:
    wanted = note_type.value if isinstance(note_type, NoteType) else note_type
    return [n for n in _docs(notes) if n.get("type") == wanted]


def pinned_notes(notes: Iterable[Any]) -> list[dict]:
    return [n for n in _docs(notes) if n.get("pinned")]


def shopping_lists(notes: Iterable[Any]) -> list[dict]:
    return notes_by_type(notes, NoteType.SHOPPING)


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


@dataclass
class CategorySpending:
    category_id: str
    name: str
    limit: float
    spent: float

    @property
    def percentage(self) -> float:
        return (self.spent / self.limit) * 100 if self.limit > 0 else 0.0

    @property
    def level(self) -> str:
        """Progress bar level: danger from 90%, warning from 70%, else ok."""
        if self.percentage >= 90:
            return "danger"
        if self.percentage >= 70:
            return "warning"
        return "ok"


@dataclass
class BudgetSummary:
    budget_id: str
    total_limit: float
    total_spent: float
    categories: list[CategorySpending]

    @property
    def percentage(self) -> int:
        if self.total_limit <= 0:
            return 0
        return round((self.total_spent / self.total_limit) * 100)


def active_budget(budgets: Iterable[Any]) -> dict | None:
    """The budget flagged active, falling back to the first one."""
    docs = _docs(budgets)
    for budget in docs:
        if budget.get("is_active"):
            return budget
    return docs[0] if docs else None


def category_spending(budget: Mapping[str, Any], expenses: Iterable[Any]) -> list[CategorySpending]:
    """Per-category spend for one budget."""
    budget_expenses = [e for e in _docs(expenses) if e.get("budget_id") == budget.get("id")]
    result = []
    for category in budget.get("categories") or []:
        cat = to_document(category)
        spent = sum(
            float(e.get("amount") or 0)
            for e in budget_expenses
            if e.get("category_id") == cat.get("id")
        )
        result.append(
            CategorySpending(
                category_id=cat.get("id", ""),
                name=cat.get("name", UNKNOWN),
                limit=float(cat.get("limit") or 0),
                spent=spent,
            )
        )
    return result


def budget_summary(budget: Mapping[str, Any], expenses: Iterable[Any]) -> BudgetSummary:
    categories = category_spending(budget, expenses)
    return BudgetSummary(
        budget_id=budget.get("id", ""),
        total_limit=float(budget.get("total_limit") or 0),
        total_spent=sum(c.spent for c in categories),
        categories=categories,
    )


def category_name(budgets: Iterable[Any], category_id: str) -> str:
    """Name of a category in the active budget, "Unknown" if missing."""
    budget = active_budget(budgets)
    if budget is None:
        return UNKNOWN
    for category in budget.get("categories") or []:
        cat = to_document(category)
        if cat.get("id") == category_id:
            return cat.get("name") or UNKNOWN
    return UNKNOWN
