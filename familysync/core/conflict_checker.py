"""
FamilySync — Event Conflict Checker.

Detects scheduling conflicts before creating or editing an event: other
events of the same family members that overlap the candidate, or that
end just before it starts. Conflicts are advisory; the caller decides
whether to save anyway.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

from familysync.config import settings
from familysync.core.queries import member_name
from familysync.core.time_range import InvalidRange, overlaps, to_range
from familysync.data.models import to_document

logger = logging.getLogger(__name__)


class ConflictType(str, Enum):
    OVERLAP = "overlap"
    TIGHT_TRANSITION = "tight_transition"


@dataclass
class Conflict:
    """One conflicting event for the candidate."""

    type: ConflictType
    event: dict
    affected_members: list[str] = field(default_factory=list)
    gap_minutes: int | None = None   # only for TIGHT_TRANSITION


def _shared_members(candidate_members: list[str], other_members: Iterable[str]) -> list[str]:
    others = set(other_members)
    return [member_id for member_id in candidate_members if member_id in others]


def detect_conflicts(
    candidate: Mapping[str, Any] | Any,
    all_events: Iterable[Mapping[str, Any] | Any],
    *,
    tight_transition_minutes: int | None = None,
) -> list[Conflict]:
    """Return every event that overlaps or crowds the candidate.

    Only events sharing at least one assignee are compared. The candidate's
    own id is skipped so an edited event is not compared with its stored
    copy, and tombstoned (deleted_at) events are ignored.

    A tight transition is reported when the other event ends less than
    tight_transition_minutes (default settings.TIGHT_TRANSITION_MINUTES)
    before (or after) the candidate starts. The gap
    between the candidate's end and the next event's start is not checked.

    Raises InvalidRange if the candidate itself has no valid time range.
    """
    cand = to_document(candidate)
    cand_range = to_range(cand)
    cand_id = cand.get("id") or None
    cand_members = list(cand.get("assigned_to") or [])
    if tight_transition_minutes is None:
        tight_transition_minutes = settings.TIGHT_TRANSITION_MINUTES
    threshold = timedelta(minutes=tight_transition_minutes)

    conflicts: list[Conflict] = []
    for raw in all_events:
        other = to_document(raw)
        if other.get("deleted_at"):
            continue
        if cand_id is not None and other.get("id") == cand_id:
            continue

        affected = _shared_members(cand_members, other.get("assigned_to") or [])
        if not affected:
            continue

        try:
            other_range = to_range(other)
        except InvalidRange as exc:
            logger.warning("Skipping event %s in conflict check: %s", other.get("id"), exc)
            continue

        try:
            overlapping = overlaps(cand_range, other_range)
        except TypeError:
            logger.warning("Skipping event %s in conflict check: mixed time zones", other.get("id"))
            continue

        if overlapping:
            conflicts.append(
                Conflict(type=ConflictType.OVERLAP, event=other, affected_members=affected)
            )
            continue

        gap = abs(other_range.end - cand_range.start)
        if timedelta(0) < gap < threshold:
            conflicts.append(
                Conflict(
                    type=ConflictType.TIGHT_TRANSITION,
                    event=other,
                    affected_members=affected,
                    gap_minutes=int(gap // timedelta(minutes=1)),
                )
            )

    if conflicts:
        logger.info(
            "Conflict check for '%s': %d conflict(s)", cand.get("title", ""), len(conflicts),
        )
    return conflicts


def has_overlap(conflicts: Iterable[Conflict]) -> bool:
    """True if any conflict is a real overlap (not just a tight transition)."""
    return any(c.type == ConflictType.OVERLAP for c in conflicts)


def describe_conflict(conflict: Conflict, members: Iterable[Mapping[str, Any] | Any] = ()) -> str:
    """One-line warning text, e.g. "Overlaps with Soccer Practice (Son)"."""
    member_list = list(members)
    names = ", ".join(member_name(member_list, m) for m in conflict.affected_members)
    title = conflict.event.get("title") or "(untitled)"
    if conflict.type == ConflictType.OVERLAP:
        return f"Overlaps with {title} ({names})"
    return f"Only {conflict.gap_minutes} mins between {title} and this event ({names})"
