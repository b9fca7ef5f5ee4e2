"""
FamilySync — UI-Agnostic Action Service.

Service layer behind every form: validate -> check conflicts -> persist
through the document store -> return a structured response object.

Each presentation layer (vanilla DOM, component framework, CLI) calls this
service and renders the responses its own way. Reads come from the Store
snapshot, which the document store keeps current through its change
notifications; writes go straight to the document store.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import ValidationError as ModelValidationError

from familysync.config import settings
from familysync.core import queries
from familysync.core.bill_projector import project_next_due_date, refresh_payment_statuses
from familysync.core.conflict_checker import Conflict, describe_conflict, detect_conflicts
from familysync.core.errors import ConflictWarning, NotFoundError, ValidationError
from familysync.core.validation import (
    ValidationResult,
    validate_bill,
    validate_budget,
    validate_event,
    validate_expense,
    validate_meal,
    validate_member,
    validate_note,
    validate_payment,
)
from familysync.data.models import (
    Bill,
    BillPayment,
    Budget,
    Collection,
    Document,
    Event,
    Expense,
    Meal,
    Member,
    Note,
    PaymentStatus,
    to_document,
)
from familysync.ports.document_store import PersistenceError

if TYPE_CHECKING:
    from familysync.core.store import HouseholdState, Store
    from familysync.ports.document_store import DocumentStorePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT_PROMPT = "conflict_prompt"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class SuccessResponse(ServiceResponse):
    doc_id: str = ""
    document: dict | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class ValidationErrorResponse(ServiceResponse):
    errors: list[str] = field(default_factory=list)


@dataclass
class ConflictPromptResponse(ServiceResponse):
    conflicts: list[Conflict] = field(default_factory=list)
    descriptions: list[str] = field(default_factory=list)
    pending: dict | None = None    # resubmit with force=True to save anyway


@dataclass
class NotFoundResponse(ServiceResponse):
    collection: str = ""
    doc_id: str = ""


@dataclass
class ErrorResponse(ServiceResponse):
    pass


def _raise_if_invalid(result: ValidationResult) -> None:
    if not result.valid:
        raise ValidationError(result.errors)


def _without_id(doc: dict) -> dict:
    return {k: v for k, v in doc.items() if k != "id"}


# ---------------------------------------------------------------------------
# ActionService
# ---------------------------------------------------------------------------


class ActionService:
    """Orchestrates every save/delete of household documents.

    Returns structured response objects and never raises for user-level
    failures: validation errors, conflicts, dangling ids and rejected
    writes all come back as responses.
    """

    def __init__(
        self,
        store: Store,
        documents: DocumentStorePort,
        *,
        undo_window_seconds: float | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._documents = documents
        self._undo_window = (
            settings.UNDO_WINDOW_SECONDS if undo_window_seconds is None else undo_window_seconds
        )
        self._clock = clock
        self._purge_tasks: set[asyncio.Task] = set()

    @property
    def _state(self) -> HouseholdState:
        return self._store.state

    def _now_iso(self) -> str:
        return self._clock().isoformat(timespec="seconds")

    # ------------------------------------------------------------------
    # Error funnel
    # ------------------------------------------------------------------

    async def _guard(self, label: str, work: Callable[[], Awaitable[ServiceResponse]]) -> ServiceResponse:
        """Run one user action, converting domain errors into responses."""
        try:
            return await work()
        except ValidationError as exc:
            logger.info("Invalid %s: %s", label, exc)
            return ValidationErrorResponse(
                kind=ResponseKind.VALIDATION_ERROR,
                message=f"Please fix the {label}: " + ", ".join(exc.errors),
                errors=exc.errors,
            )
        except ModelValidationError as exc:
            errors = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]
            logger.info("Malformed %s: %s", label, errors)
            return ValidationErrorResponse(
                kind=ResponseKind.VALIDATION_ERROR,
                message=f"Please fix the {label}: " + ", ".join(errors),
                errors=errors,
            )
        except ConflictWarning as exc:
            members = self._state.members
            return ConflictPromptResponse(
                kind=ResponseKind.CONFLICT_PROMPT,
                message=f"This {label} has {len(exc.conflicts)} scheduling conflict(s). Save anyway?",
                conflicts=exc.conflicts,
                descriptions=[describe_conflict(c, members) for c in exc.conflicts],
                pending=exc.pending,
            )
        except NotFoundError as exc:
            logger.warning("Lookup failed for %s: %s", label, exc)
            return NotFoundResponse(
                kind=ResponseKind.NOT_FOUND,
                message=str(exc),
                collection=exc.collection,
                doc_id=exc.doc_id,
            )
        except PersistenceError as exc:
            logger.error("Saving %s failed: %s", label, exc)
            return ErrorResponse(
                kind=ResponseKind.ERROR,
                message=f"Error saving {label}: {exc}",
            )

    async def _persist(self, collection: Collection, doc: dict, doc_id: str | None) -> str:
        """Add a new document or update an existing one; returns its id."""
        if doc_id:
            await self._documents.update(collection, doc_id, _without_id(doc))
            return doc_id
        return await self._documents.add(collection, _without_id(doc))

    async def _save(
        self,
        label: str,
        collection: Collection,
        model: type[Document],
        validator: Callable[[dict], ValidationResult],
        data: dict[str, Any],
        doc_id: str | None,
        prepare: Callable[[dict], dict] | None = None,
    ) -> ServiceResponse:
        """Shared create/update flow for documents without conflict checks."""

        async def work() -> ServiceResponse:
            now = self._now_iso()
            if doc_id:
                existing = queries.require(self._state.collection(collection), doc_id, collection)
                candidate = {**existing, **to_document(data), "id": doc_id}
            else:
                candidate = {**to_document(data), "created_at": now}
            if prepare is not None:
                candidate = prepare(candidate)

            result = validator(candidate)
            _raise_if_invalid(result)

            doc = to_document(model.model_validate({**candidate, "updated_at": now}))
            saved_id = await self._persist(collection, doc, doc_id)
            doc["id"] = saved_id
            logger.info("Saved %s %s", label, saved_id)
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Saved {label}",
                doc_id=saved_id,
                document=doc,
                warnings=result.warnings,
            )

        return await self._guard(label, work)

    async def _delete(self, label: str, collection: Collection, doc_id: str) -> ServiceResponse:
        async def work() -> ServiceResponse:
            queries.require(self._state.collection(collection), doc_id, collection)
            await self._documents.delete(collection, doc_id)
            logger.info("Deleted %s %s", label, doc_id)
            return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Deleted {label}", doc_id=doc_id)

        return await self._guard(label, work)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def save_event(
        self,
        data: dict[str, Any],
        event_id: str | None = None,
        force: bool = False,
    ) -> ServiceResponse:
        """Create or edit an event.

        Validation failures block the save. Conflicts return a prompt unless
        force is set; the prompt's pending document can be resubmitted as-is.
        """

        async def work() -> ServiceResponse:
            now = self._now_iso()
            if event_id:
                existing = queries.require(self._state.events, event_id, Collection.EVENTS)
                candidate = {**existing, **to_document(data), "id": event_id}
            else:
                candidate = {k: v for k, v in to_document(data).items() if k != "id"}
                candidate.setdefault("created_at", now)
                if not candidate.get("color"):
                    candidate["color"] = queries.infer_event_color(
                        candidate.get("assigned_to") or [], self._state.members,
                    )

            result = validate_event(candidate, long_event_hours=settings.LONG_EVENT_HOURS)
            _raise_if_invalid(result)

            if not force:
                conflicts = detect_conflicts(
                    candidate,
                    self._state.events,
                    tight_transition_minutes=settings.TIGHT_TRANSITION_MINUTES,
                )
                if conflicts:
                    raise ConflictWarning(conflicts, pending=candidate)

            doc = to_document(Event.model_validate({**candidate, "updated_at": now}))
            saved_id = await self._persist(Collection.EVENTS, doc, event_id)
            doc["id"] = saved_id
            logger.info("Event saved: %s '%s'", saved_id, doc["title"])
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Saved '{doc['title']}'",
                doc_id=saved_id,
                document=doc,
                warnings=result.warnings,
            )

        return await self._guard("event", work)

    async def delete_event(self, event_id: str) -> ServiceResponse:
        """Soft-delete an event; it is removed for good after the undo window."""

        async def work() -> ServiceResponse:
            event = queries.require(self._state.events, event_id, Collection.EVENTS)
            await self._documents.update(Collection.EVENTS, event_id, {"deleted_at": self._now_iso()})
            self._schedule_purge(event_id)
            logger.info(
                "Event %s soft-deleted (%ss undo window)", event_id, self._undo_window,
            )
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Deleted '{event.get('title', '')}'",
                doc_id=event_id,
            )

        return await self._guard("event", work)

    async def restore_event(self, event_id: str) -> ServiceResponse:
        """Undo a soft delete that is still inside its undo window."""

        async def work() -> ServiceResponse:
            event = queries.require(self._state.events, event_id, Collection.EVENTS)
            if event.get("deleted_at"):
                await self._documents.update(Collection.EVENTS, event_id, {"deleted_at": None})
                logger.info("Event %s restored", event_id)
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Restored '{event.get('title', '')}'",
                doc_id=event_id,
            )

        return await self._guard("event", work)

    def _schedule_purge(self, event_id: str) -> None:
        task = asyncio.get_running_loop().create_task(self._purge_after_window(event_id))
        self._purge_tasks.add(task)
        task.add_done_callback(self._purge_tasks.discard)

    async def _purge_after_window(self, event_id: str) -> None:
        await asyncio.sleep(self._undo_window)
        current = queries.find_by_id(self._state.events, event_id)
        if current is None or not current.get("deleted_at"):
            return
        try:
            await self._documents.delete(Collection.EVENTS, event_id)
        except PersistenceError as exc:
            logger.error("Failed to purge event %s: %s", event_id, exc)
            return
        logger.info("Event %s permanently deleted", event_id)

    async def duplicate_event(
        self, event_id: str, overrides: dict[str, Any] | None = None,
    ) -> ServiceResponse:
        """Copy an event as "<title> (Copy)", skipping the conflict check."""

        async def work() -> ServiceResponse:
            original = queries.require(self._state.events, event_id, Collection.EVENTS)
            now = self._now_iso()
            copy = {
                k: v for k, v in original.items() if k not in ("id", "deleted_at")
            }
            copy.update(
                title=f"{original.get('title', '')} (Copy)",
                created_at=now,
                updated_at=now,
            )
            copy.update(overrides or {})
            _raise_if_invalid(validate_event(copy, long_event_hours=settings.LONG_EVENT_HOURS))

            new_id = await self._documents.add(Collection.EVENTS, copy)
            logger.info("Event %s duplicated as %s", event_id, new_id)
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Created '{copy['title']}'",
                doc_id=new_id,
                document={**copy, "id": new_id},
            )

        return await self._guard("event", work)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def save_member(self, data: dict[str, Any], member_id: str | None = None) -> ServiceResponse:
        return await self._save(
            "member", Collection.MEMBERS, Member, validate_member, data, member_id,
        )

    # ------------------------------------------------------------------
    # Meals
    # ------------------------------------------------------------------

    async def save_meal(self, data: dict[str, Any], meal_id: str | None = None) -> ServiceResponse:
        return await self._save("meal", Collection.MEALS, Meal, validate_meal, data, meal_id)

    async def delete_meal(self, meal_id: str) -> ServiceResponse:
        """Delete a meal. Events that link to it keep the dangling id."""
        return await self._delete("meal", Collection.MEALS, meal_id)

    async def toggle_favorite(self, meal_id: str) -> ServiceResponse:
        meal = queries.find_by_id(self._state.meals, meal_id)
        is_favorite = bool(meal and meal.get("is_favorite"))
        return await self.save_meal({"is_favorite": not is_favorite}, meal_id)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def save_note(self, data: dict[str, Any], note_id: str | None = None) -> ServiceResponse:
        return await self._save("note", Collection.NOTES, Note, validate_note, data, note_id)

    async def delete_note(self, note_id: str) -> ServiceResponse:
        return await self._delete("note", Collection.NOTES, note_id)

    async def toggle_pin(self, note_id: str) -> ServiceResponse:
        note = queries.find_by_id(self._state.notes, note_id)
        pinned = bool(note and note.get("pinned"))
        return await self.save_note({"pinned": not pinned}, note_id)

    def _note_items(self, note_id: str) -> list[dict]:
        note = queries.require(self._state.notes, note_id, Collection.NOTES)
        return [to_document(item) for item in note.get("items") or []]

    async def add_note_item(self, note_id: str, text: str) -> ServiceResponse:
        """Append an unchecked item to a list-style note."""

        async def work() -> ServiceResponse:
            if not text or not text.strip():
                raise ValidationError(["Item text is required"])
            items = self._note_items(note_id)
            items.append({"id": uuid.uuid4().hex, "text": text.strip(), "completed": False})
            return await self.save_note({"items": items}, note_id)

        return await self._guard("note", work)

    async def toggle_note_item(self, note_id: str, item_id: str) -> ServiceResponse:
        async def work() -> ServiceResponse:
            items = [
                {**item, "completed": not item.get("completed")} if item.get("id") == item_id else item
                for item in self._note_items(note_id)
            ]
            return await self.save_note({"items": items}, note_id)

        return await self._guard("note", work)

    async def remove_note_item(self, note_id: str, item_id: str) -> ServiceResponse:
        async def work() -> ServiceResponse:
            items = [item for item in self._note_items(note_id) if item.get("id") != item_id]
            return await self.save_note({"items": items}, note_id)

        return await self._guard("note", work)

    # ------------------------------------------------------------------
    # Budgets & expenses
    # ------------------------------------------------------------------

    async def save_budget(self, data: dict[str, Any], budget_id: str | None = None) -> ServiceResponse:
        """Create or edit a budget; total_limit is the sum of category limits."""

        def with_total(candidate: dict) -> dict:
            categories = [to_document(c) for c in candidate.get("categories") or []]
            total = 0.0
            for category in categories:
                try:
                    total += float(category.get("limit") or 0)
                except (TypeError, ValueError):
                    continue
            return {**candidate, "categories": categories, "total_limit": total}

        return await self._save(
            "budget", Collection.BUDGETS, Budget, validate_budget, data, budget_id,
            prepare=with_total,
        )

    async def delete_budget(self, budget_id: str) -> ServiceResponse:
        """Delete a budget together with all of its expenses."""

        async def work() -> ServiceResponse:
            queries.require(self._state.budgets, budget_id, Collection.BUDGETS)
            owned = [e["id"] for e in self._state.expenses if e.get("budget_id") == budget_id]
            for expense_id in owned:
                await self._documents.delete(Collection.EXPENSES, expense_id)
            await self._documents.delete(Collection.BUDGETS, budget_id)
            logger.info("Budget %s deleted with %d expense(s)", budget_id, len(owned))
            return SuccessResponse(kind=ResponseKind.SUCCESS, message="Deleted budget", doc_id=budget_id)

        return await self._guard("budget", work)

    async def save_expense(self, data: dict[str, Any], expense_id: str | None = None) -> ServiceResponse:
        return await self._save(
            "expense", Collection.EXPENSES, Expense, validate_expense, data, expense_id,
        )

    async def delete_expense(self, expense_id: str) -> ServiceResponse:
        return await self._delete("expense", Collection.EXPENSES, expense_id)

    # ------------------------------------------------------------------
    # Bills & payments
    # ------------------------------------------------------------------

    def _category_ids(self) -> list[str] | None:
        budget = queries.active_budget(self._state.budgets)
        if budget is None:
            return None
        return [to_document(c).get("id") for c in budget.get("categories") or []]

    async def save_bill(self, data: dict[str, Any], bill_id: str | None = None) -> ServiceResponse:
        """Create or edit a bill. Variable-amount bills store amount 0."""
        category_ids = self._category_ids()

        def zero_variable(candidate: dict) -> dict:
            if candidate.get("is_variable_amount"):
                return {**candidate, "amount": 0}
            return candidate

        return await self._save(
            "bill", Collection.BILLS, Bill,
            lambda doc: validate_bill(doc, category_ids),
            data, bill_id, prepare=zero_variable,
        )

    async def delete_bill(self, bill_id: str) -> ServiceResponse:
        """Delete a bill and its payment history."""

        async def work() -> ServiceResponse:
            queries.require(self._state.bills, bill_id, Collection.BILLS)
            history = [p["id"] for p in self._state.bill_payments if p.get("bill_id") == bill_id]
            for payment_id in history:
                await self._documents.delete(Collection.BILL_PAYMENTS, payment_id)
            await self._documents.delete(Collection.BILLS, bill_id)
            logger.info("Bill %s deleted with %d payment(s)", bill_id, len(history))
            return SuccessResponse(kind=ResponseKind.SUCCESS, message="Deleted bill", doc_id=bill_id)

        return await self._guard("bill", work)

    async def record_payment(
        self, data: dict[str, Any], payment_id: str | None = None,
    ) -> ServiceResponse:
        """Record a bill as paid.

        Also books the amount as an expense in the active budget and links
        it back through created_expense_id. due_date defaults to the bill's
        next projected due date.
        """

        async def work() -> ServiceResponse:
            now = self._now_iso()
            form = to_document(data)
            _raise_if_invalid(validate_payment(form))

            bill = queries.require(self._state.bills, form["bill_id"], Collection.BILLS)
            existing = (
                queries.require(self._state.bill_payments, payment_id, Collection.BILL_PAYMENTS)
                if payment_id else None
            )
            budget = queries.active_budget(self._state.budgets)
            if budget is None:
                raise ValidationError(["Please create a budget first before recording payments."])

            due_date = form.get("due_date") or project_next_due_date(
                bill, self._clock().date(), self._state.bill_payments,
            ).due_date.isoformat()
            amount = float(form["actual_amount"])
            payment_method = form.get("payment_method") or bill.get("payment_method") or "credit"

            expense = to_document(Expense(
                budget_id=budget["id"],
                category_id=bill.get("category_id", ""),
                amount=amount,
                description=f"Bill: {bill.get('name', '')}",
                date=form["paid_date"],
                payment_method=payment_method,
                tags=["bill", bill.get("name", "")],
            ))
            # An edited payment keeps its one linked expense
            expense_id = existing.get("created_expense_id") if existing else None
            if expense_id and queries.find_by_id(self._state.expenses, expense_id):
                await self._documents.update(Collection.EXPENSES, expense_id, {
                    "amount": amount,
                    "date": form["paid_date"],
                    "payment_method": payment_method,
                })
            else:
                expense_id = await self._documents.add(Collection.EXPENSES, _without_id(expense))

            payment = to_document(BillPayment.model_validate({
                **form,
                "due_date": due_date,
                "scheduled_amount": float(bill.get("amount") or 0),
                "actual_amount": amount,
                "status": PaymentStatus.PAID,
                "payment_method": payment_method,
                "created_expense_id": expense_id,
                "updated_at": now,
            }))
            if not payment_id:
                payment["created_at"] = now
            saved_id = await self._persist(Collection.BILL_PAYMENTS, payment, payment_id)
            payment["id"] = saved_id
            logger.info(
                "Payment %s recorded for bill %s (expense %s)", saved_id, bill["id"], expense_id,
            )
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Recorded payment for {bill.get('name', '')}",
                doc_id=saved_id,
                document=payment,
            )

        return await self._guard("payment", work)

    async def mark_overdue_payments(self, today: date | None = None) -> ServiceResponse:
        """Flip pending payments past their due date to overdue."""

        async def work() -> ServiceResponse:
            changed = refresh_payment_statuses(
                self._state.bill_payments, today or self._clock().date(),
            )
            for payment in changed:
                await self._documents.update(
                    Collection.BILL_PAYMENTS, payment["id"], {"status": payment["status"]},
                )
            if changed:
                logger.info("%d payment(s) marked overdue", len(changed))
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"{len(changed)} payment(s) marked overdue",
            )

        return await self._guard("payment", work)
