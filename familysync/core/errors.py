"""Domain errors raised inside a single user action.

None of these is fatal: the action service catches each one and turns it
into a response for the presentation layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from familysync.core.conflict_checker import Conflict


class ValidationError(Exception):
    """Blocking: the user must fix the listed problems before saving."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(", ".join(errors))
        self.errors = list(errors)


class ConflictWarning(Exception):
    """Non-blocking: the save may proceed if the user confirms."""

    def __init__(self, conflicts: list[Conflict], pending: dict | None = None) -> None:
        super().__init__(f"{len(conflicts)} scheduling conflict(s)")
        self.conflicts = list(conflicts)
        self.pending = pending   # the document that would have been saved


class NotFoundError(LookupError):
    """A referenced document id does not resolve."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection} not found: {doc_id}")
        self.collection = collection
        self.doc_id = doc_id
