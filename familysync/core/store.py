"""
FamilySync — State Container.

Immutable household state plus a small publish/subscribe store. State
transitions are pure: reduce(state, action) returns a new state and never
touches the old one. The action set is closed (ActionType) and every
member has a handler, checked when this module is imported.

The Store keeps its subscribers in an injectable SubscriberRegistry, so
tests and separate UIs each get their own instead of sharing a global.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from familysync.data.models import Collection, to_document

if TYPE_CHECKING:
    from familysync.ports.document_store import DocumentStorePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UiState:
    current_date: str = ""
    selected_event_id: str | None = None
    visible_members: tuple[str, ...] = ()     # empty → show everyone


@dataclass(frozen=True)
class HouseholdState:
    events: tuple[dict, ...] = ()
    members: tuple[dict, ...] = ()
    notes: tuple[dict, ...] = ()
    meals: tuple[dict, ...] = ()
    budgets: tuple[dict, ...] = ()
    expenses: tuple[dict, ...] = ()
    bills: tuple[dict, ...] = ()
    bill_payments: tuple[dict, ...] = ()
    ui: UiState = field(default_factory=UiState)

    def collection(self, collection: Collection) -> tuple[dict, ...]:
        return getattr(self, _FIELD_BY_COLLECTION[collection])


_FIELD_BY_COLLECTION: dict[Collection, str] = {
    Collection.EVENTS: "events",
    Collection.MEMBERS: "members",
    Collection.NOTES: "notes",
    Collection.MEALS: "meals",
    Collection.BUDGETS: "budgets",
    Collection.EXPENSES: "expenses",
    Collection.BILLS: "bills",
    Collection.BILL_PAYMENTS: "bill_payments",
}


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class ActionType(Enum):
    SET_COLLECTION = "set_collection"
    ADD_DOCUMENT = "add_document"
    UPDATE_DOCUMENT = "update_document"
    DELETE_DOCUMENT = "delete_document"
    SET_CURRENT_DATE = "set_current_date"
    SELECT_EVENT = "select_event"
    SET_VISIBLE_MEMBERS = "set_visible_members"


@dataclass(frozen=True)
class Action:
    type: ActionType
    collection: Collection | None = None
    payload: Any = None


def _with_collection(state: HouseholdState, collection: Collection, docs: tuple[dict, ...]) -> HouseholdState:
    return replace(state, **{_FIELD_BY_COLLECTION[collection]: docs})


def _require_collection(action: Action) -> Collection:
    if action.collection is None:
        raise ValueError(f"{action.type.name} needs a collection")
    return action.collection


def _set_collection(state: HouseholdState, action: Action) -> HouseholdState:
    collection = _require_collection(action)
    docs = tuple(to_document(d) for d in action.payload or ())
    return _with_collection(state, collection, docs)


def _add_document(state: HouseholdState, action: Action) -> HouseholdState:
    collection = _require_collection(action)
    doc = to_document(action.payload)
    return _with_collection(state, collection, state.collection(collection) + (doc,))


def _update_document(state: HouseholdState, action: Action) -> HouseholdState:
    collection = _require_collection(action)
    doc = to_document(action.payload)
    docs = tuple(
        {**existing, **doc} if existing.get("id") == doc.get("id") else existing
        for existing in state.collection(collection)
    )
    return _with_collection(state, collection, docs)


def _delete_document(state: HouseholdState, action: Action) -> HouseholdState:
    collection = _require_collection(action)
    docs = tuple(d for d in state.collection(collection) if d.get("id") != action.payload)
    return _with_collection(state, collection, docs)


def _set_current_date(state: HouseholdState, action: Action) -> HouseholdState:
    return replace(state, ui=replace(state.ui, current_date=action.payload))


def _select_event(state: HouseholdState, action: Action) -> HouseholdState:
    return replace(state, ui=replace(state.ui, selected_event_id=action.payload))


def _set_visible_members(state: HouseholdState, action: Action) -> HouseholdState:
    return replace(state, ui=replace(state.ui, visible_members=tuple(action.payload or ())))


_HANDLERS: dict[ActionType, Callable[[HouseholdState, Action], HouseholdState]] = {
    ActionType.SET_COLLECTION: _set_collection,
    ActionType.ADD_DOCUMENT: _add_document,
    ActionType.UPDATE_DOCUMENT: _update_document,
    ActionType.DELETE_DOCUMENT: _delete_document,
    ActionType.SET_CURRENT_DATE: _set_current_date,
    ActionType.SELECT_EVENT: _select_event,
    ActionType.SET_VISIBLE_MEMBERS: _set_visible_members,
}

_unhandled = set(ActionType) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No reducer for action types: {sorted(a.name for a in _unhandled)}")


def reduce(state: HouseholdState, action: Action) -> HouseholdState:
    """Apply one action and return the new state."""
    return _HANDLERS[action.type](state, action)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Subscriber = Callable[[HouseholdState, Action], None]


class SubscriberRegistry:
    """Named subscriber callbacks. One registry per store."""

    def __init__(self) -> None:
        self._callbacks: dict[str, Subscriber] = {}

    def add(self, name: str, callback: Subscriber) -> None:
        self._callbacks[name] = callback

    def remove(self, name: str) -> None:
        self._callbacks.pop(name, None)

    def items(self) -> list[tuple[str, Subscriber]]:
        return list(self._callbacks.items())

    def __len__(self) -> int:
        return len(self._callbacks)


class Store:
    """Holds the current HouseholdState and notifies subscribers on change."""

    def __init__(
        self,
        initial: HouseholdState | None = None,
        subscribers: SubscriberRegistry | None = None,
        max_history: int = 50,
    ) -> None:
        self._state = initial or HouseholdState()
        self._subscribers = subscribers if subscribers is not None else SubscriberRegistry()
        self._history: list[tuple[HouseholdState, Action]] = []
        self._max_history = max_history

    @property
    def state(self) -> HouseholdState:
        return self._state

    def dispatch(self, action: Action) -> HouseholdState:
        """Reduce the action into a new state and notify subscribers."""
        logger.debug("Dispatching %s %s", action.type.name, action.collection)
        new_state = reduce(self._state, action)

        # Backend snapshots are not undoable
        if action.type is not ActionType.SET_COLLECTION:
            self._history.append((self._state, action))
            if len(self._history) > self._max_history:
                self._history.pop(0)

        self._state = new_state
        self._notify(action)
        return new_state

    def subscribe(self, name: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        self._subscribers.add(name, callback)

        def unsubscribe() -> None:
            self._subscribers.remove(name)

        return unsubscribe

    def undo(self) -> bool:
        """Restore the state before the last undoable action.

        Subscribers are notified with the action that was undone.
        """
        if not self._history:
            return False
        self._state, undone = self._history.pop()
        self._notify(undone)
        return True

    def _notify(self, action: Action) -> None:
        for name, callback in self._subscribers.items():
            try:
                callback(self._state, action)
            except Exception as exc:
                logger.error("Subscriber %s failed on %s: %s", name, action.type.name, exc)


def bind_document_store(store: Store, documents: DocumentStorePort) -> Callable[[], None]:
    """Mirror every backend collection into the store.

    Returns a function that stops all the backend subscriptions.
    """
    unsubscribers = []
    for collection in Collection:
        def on_change(items: list[dict], collection: Collection = collection) -> None:
            store.dispatch(Action(ActionType.SET_COLLECTION, collection, items))

        unsubscribers.append(documents.subscribe(collection, on_change))

    def unbind() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return unbind
