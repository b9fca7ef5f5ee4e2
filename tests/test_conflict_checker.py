"""Tests for familysync.core.conflict_checker — overlap and tight-transition detection."""

from unittest.mock import patch

import pytest

from familysync.core.conflict_checker import (
    Conflict,
    ConflictType,
    describe_conflict,
    detect_conflicts,
    has_overlap,
)
from familysync.core.time_range import InvalidRange


def _event(event_id, start, end, assigned_to=("m1",), **extra):
    event = {
        "id": event_id,
        "title": f"Event {event_id}",
        "start_time": f"2024-01-01T{start}",
        "end_time": f"2024-01-01T{end}",
        "assigned_to": list(assigned_to),
    }
    event.update(extra)
    return event


CANDIDATE = _event("cand", "10:00", "11:00")


# ---------------------------------------------------------------------------
# Overlaps
# ---------------------------------------------------------------------------


class TestOverlap:
    def test_partial_overlap(self):
        other = _event("e2", "10:30", "11:30")
        conflicts = detect_conflicts(CANDIDATE, [other])
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.OVERLAP
        assert conflicts[0].event["id"] == "e2"
        assert conflicts[0].affected_members == ["m1"]
        assert conflicts[0].gap_minutes is None

    def test_overlap_is_reported_both_ways(self):
        a = _event("a", "10:00", "11:00", assigned_to=("m1", "m2"))
        b = _event("b", "10:30", "11:30", assigned_to=("m2", "m3"))
        from_a = detect_conflicts(a, [a, b])
        from_b = detect_conflicts(b, [a, b])
        assert [(c.type, c.event["id"], c.affected_members) for c in from_a] == [
            (ConflictType.OVERLAP, "b", ["m2"])
        ]
        assert [(c.type, c.event["id"], c.affected_members) for c in from_b] == [
            (ConflictType.OVERLAP, "a", ["m2"])
        ]

    def test_contained_event(self):
        other = _event("e2", "10:15", "10:45")
        conflicts = detect_conflicts(CANDIDATE, [other])
        assert [c.type for c in conflicts] == [ConflictType.OVERLAP]

    def test_overlap_is_not_also_reported_as_tight(self):
        # Ends 5 minutes after the candidate starts: overlap only
        other = _event("e2", "09:00", "10:05")
        conflicts = detect_conflicts(CANDIDATE, [other])
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.OVERLAP

    def test_back_to_back_is_no_conflict(self):
        other = _event("e2", "09:00", "10:00")
        assert detect_conflicts(CANDIDATE, [other]) == []

    def test_event_starting_when_candidate_ends_is_no_conflict(self):
        other = _event("e2", "11:00", "12:00")
        assert detect_conflicts(CANDIDATE, [other]) == []


# ---------------------------------------------------------------------------
# Tight transitions
# ---------------------------------------------------------------------------


class TestTightTransition:
    def test_short_gap_before_candidate(self):
        other = _event("e2", "09:00", "09:50")
        conflicts = detect_conflicts(CANDIDATE, [other])
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.TIGHT_TRANSITION
        assert conflicts[0].gap_minutes == 10

    def test_gap_at_threshold_is_fine(self):
        other = _event("e2", "09:00", "09:45")
        assert detect_conflicts(CANDIDATE, [other]) == []

    def test_custom_threshold(self):
        other = _event("e2", "09:00", "09:45")
        conflicts = detect_conflicts(CANDIDATE, [other], tight_transition_minutes=20)
        assert conflicts[0].gap_minutes == 15

    @patch("familysync.core.conflict_checker.settings")
    def test_threshold_defaults_to_settings(self, mock_settings):
        mock_settings.TIGHT_TRANSITION_MINUTES = 20
        other = _event("e2", "09:00", "09:45")
        conflicts = detect_conflicts(CANDIDATE, [other])
        assert conflicts[0].gap_minutes == 15

    def test_gap_after_candidate_end_is_not_checked(self):
        # Next event starts 5 min after the candidate ends; only other_end
        # vs candidate_start is measured, and that gap is 85 minutes.
        other = _event("e2", "11:05", "11:25")
        assert detect_conflicts(CANDIDATE, [other]) == []

    def test_other_ending_shortly_after_candidate_start(self):
        short = _event("cand", "10:00", "10:05")
        other = _event("e2", "10:05", "10:10")
        conflicts = detect_conflicts(short, [other])
        assert len(conflicts) == 1
        assert conflicts[0].type == ConflictType.TIGHT_TRANSITION
        assert conflicts[0].gap_minutes == 10


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


class TestFiltering:
    def test_no_shared_members(self):
        other = _event("e2", "10:30", "11:30", assigned_to=("m2",))
        assert detect_conflicts(CANDIDATE, [other]) == []

    def test_affected_members_follow_candidate_order(self):
        candidate = _event("cand", "10:00", "11:00", assigned_to=("m3", "m1", "m2"))
        other = _event("e2", "10:30", "11:30", assigned_to=("m1", "m2", "m9"))
        conflicts = detect_conflicts(candidate, [other])
        assert conflicts[0].affected_members == ["m1", "m2"]

    def test_own_id_is_skipped(self):
        stored_copy = _event("cand", "10:00", "11:00")
        assert detect_conflicts(CANDIDATE, [stored_copy]) == []

    def test_new_candidate_without_id_checks_everything(self):
        candidate = {k: v for k, v in CANDIDATE.items() if k != "id"}
        other = _event("e2", "10:30", "11:30")
        assert len(detect_conflicts(candidate, [other])) == 1

    def test_deleted_events_are_ignored(self):
        other = _event("e2", "10:30", "11:30", deleted_at="2024-01-01T09:00:00")
        assert detect_conflicts(CANDIDATE, [other]) == []

    def test_malformed_other_event_is_skipped(self):
        broken = _event("e2", "10:30", "11:30")
        broken["end_time"] = "garbage"
        good = _event("e3", "10:30", "11:30")
        conflicts = detect_conflicts(CANDIDATE, [broken, good])
        assert [c.event["id"] for c in conflicts] == ["e3"]

    def test_mixed_time_zones_are_skipped(self):
        other = _event("e2", "10:30Z", "11:30Z")
        assert detect_conflicts(CANDIDATE, [other]) == []

    def test_invalid_candidate_raises(self):
        candidate = _event("cand", "11:00", "10:00")
        with pytest.raises(InvalidRange):
            detect_conflicts(candidate, [])

    def test_multiple_conflicts_keep_input_order(self):
        events = [
            _event("e2", "09:00", "09:55"),
            _event("e3", "10:30", "11:30"),
            _event("e4", "12:00", "13:00"),
        ]
        conflicts = detect_conflicts(CANDIDATE, events)
        assert [c.event["id"] for c in conflicts] == ["e2", "e3"]
        assert has_overlap(conflicts)

    def test_has_overlap_false_for_tight_only(self):
        conflicts = detect_conflicts(CANDIDATE, [_event("e2", "09:00", "09:50")])
        assert not has_overlap(conflicts)


# ---------------------------------------------------------------------------
# describe_conflict
# ---------------------------------------------------------------------------


class TestDescribeConflict:
    MEMBERS = [{"id": "m1", "name": "Son"}, {"id": "m2", "name": "Mom"}]

    def test_overlap_message(self):
        conflict = Conflict(
            type=ConflictType.OVERLAP,
            event={"title": "Soccer Practice"},
            affected_members=["m1", "m2"],
        )
        assert describe_conflict(conflict, self.MEMBERS) == "Overlaps with Soccer Practice (Son, Mom)"

    def test_tight_message(self):
        conflict = Conflict(
            type=ConflictType.TIGHT_TRANSITION,
            event={"title": "Piano"},
            affected_members=["m1"],
            gap_minutes=10,
        )
        assert describe_conflict(conflict, self.MEMBERS) == (
            "Only 10 mins between Piano and this event (Son)"
        )

    def test_unknown_member(self):
        conflict = Conflict(
            type=ConflictType.OVERLAP, event={"title": "X"}, affected_members=["ghost"],
        )
        assert describe_conflict(conflict, self.MEMBERS) == "Overlaps with X (Unknown)"
