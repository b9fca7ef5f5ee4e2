"""
FamilySync — Data Models.

Every entity is a flat document identified by an opaque id. The document
store enforces no schema, so these models keep unknown fields and apply
the defaults a freshly created record gets. Shape rules (required fields,
date ordering) live in familysync.core.validation, not here.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Collection(str, Enum):
    """Backend collection names."""

    EVENTS = "events"
    MEMBERS = "users"
    NOTES = "notes"
    MEALS = "meals"
    BUDGETS = "budgets"
    EXPENSES = "expenses"
    BILLS = "bills"
    BILL_PAYMENTS = "billPayments"


class MemberRole(str, Enum):
    PARENT = "parent"
    CHILD = "child"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class BillFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class NoteType(str, Enum):
    GENERAL = "general"
    SHOPPING = "shopping"
    CONTACT = "contact"
    MEDICAL = "medical"


class Document(BaseModel):
    """Base for every stored document."""

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: str = ""


class ChecklistItem(BaseModel):
    """One line of an event checklist or a list-style note."""

    id: str
    text: str
    completed: bool = False


# Notes reuse the checklist item shape
NoteItem = ChecklistItem


class Transportation(BaseModel):
    type: str | None = None
    driver: str | None = None
    pickup: str | None = None
    dropoff: str | None = None


class Recurrence(BaseModel):
    enabled: bool = False
    pattern: str | None = None
    days_of_week: list[int] = Field(default_factory=list)
    end_date: str | None = None
    exceptions: list[str] = Field(default_factory=list)


class Event(Document):
    """A calendar event shared by one or more household members.

    start_time/end_time are ISO-8601 strings, e.g. "2024-01-01T10:00".
    meal is a weak reference to a Meal id; it may dangle.
    """

    title: str
    start_time: str
    end_time: str
    assigned_to: list[str] = Field(default_factory=list)
    category: str = "general"
    location: dict[str, Any] | None = None
    transportation: Transportation = Field(default_factory=Transportation)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    recurring: Recurrence = Field(default_factory=Recurrence)
    notes: str = ""
    status: str = "confirmed"
    color: str = "gray"
    meal: str | None = None
    created_by: str | None = None
    created_at: str = ""
    updated_at: str = ""
    deleted_at: str | None = None


class Permissions(BaseModel):
    can_create_events: bool = True
    requires_approval: bool = False


class Member(Document):
    """A household member. Referenced by Event.assigned_to, never owned."""

    name: str
    role: MemberRole = MemberRole.PARENT
    color: str = "gray"
    avatar: str | None = None
    birthday: str | None = None
    phone: str | None = None
    email: str | None = None
    emergency_contact: dict[str, Any] | None = None
    permissions: Permissions = Field(default_factory=Permissions)


class Note(Document):
    """Freeform or checklist note. Shopping lists are notes with type "shopping"."""

    title: str
    content: str = ""
    type: NoteType = NoteType.GENERAL
    items: list[NoteItem] = Field(default_factory=list)
    pinned: bool = False
    color: str = "blue"
    created_by: str | None = None
    created_at: str = ""
    updated_at: str = ""


class Meal(Document):
    name: str
    description: str = ""
    category: str = "dinner"          # breakfast, lunch, dinner, snack, dessert
    cuisine: str = ""
    prep_time: int = 0                # minutes
    cook_time: int = 0                # minutes
    servings: int = 4
    difficulty: str = "medium"        # easy, medium, hard
    ingredients: list[str] = Field(default_factory=list)
    instructions: str = ""
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    created_at: str = ""
    updated_at: str = ""

    @property
    def total_time(self) -> int:
        return (self.prep_time or 0) + (self.cook_time or 0)


class BudgetCategory(BaseModel):
    id: str
    name: str
    limit: float = 0.0
    color: str = "#6B7280"
    icon: str = ""
    is_custom: bool = False


class Budget(Document):
    name: str
    period: str = "monthly"
    start_date: str = ""
    end_date: str | None = None
    categories: list[BudgetCategory] = Field(default_factory=list)
    total_limit: float = 0.0
    is_active: bool = True


class Expense(Document):
    """A single spend, owned by exactly one Budget via budget_id."""

    budget_id: str
    category_id: str
    amount: float
    description: str = ""
    date: str = ""
    payment_method: str = "credit"
    tags: list[str] = Field(default_factory=list)


class Bill(Document):
    name: str
    provider: str = ""
    amount: float = 0.0
    is_variable_amount: bool = False
    category_id: str = ""
    due_day: int = 1                  # 1-31
    frequency: BillFrequency = BillFrequency.MONTHLY
    payment_method: str = "credit"
    is_active: bool = True


class BillPayment(Document):
    """One period's payment of a Bill. due_date is "YYYY-MM-DD"."""

    bill_id: str
    due_date: str
    scheduled_amount: float = 0.0
    actual_amount: float = 0.0
    status: PaymentStatus = PaymentStatus.PENDING
    paid_date: str | None = None
    payment_method: str = "credit"
    confirmation_number: str = ""
    created_expense_id: str | None = None


MODEL_BY_COLLECTION: dict[Collection, type[Document]] = {
    Collection.EVENTS: Event,
    Collection.MEMBERS: Member,
    Collection.NOTES: Note,
    Collection.MEALS: Meal,
    Collection.BUDGETS: Budget,
    Collection.EXPENSES: Expense,
    Collection.BILLS: Bill,
    Collection.BILL_PAYMENTS: BillPayment,
}


def to_document(obj: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    """Return a plain JSON-ready dict for a model or mapping."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    return dict(obj)
