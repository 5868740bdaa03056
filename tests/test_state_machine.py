"""
Tests for the report lifecycle state machine
"""
from datetime import datetime

import pytest

import sys
sys.path.insert(0, '.')

from reliefwatch.core.constants import (
    ActorRole,
    ReportCategory,
    ReportStatus,
    ResponderAction,
    ResponderRole,
)
from reliefwatch.core.errors import ConflictError, ForbiddenError, ValidationError
from reliefwatch.core.permissions import Actor
from reliefwatch.dispatch import state_machine
from reliefwatch.dispatch.state_machine import Assignment, ReportSnapshot


NOW = datetime(2026, 3, 1, 12, 0, 0)

AUTHORITY = Actor(id="auth-1", role=ActorRole.AUTHORITY)
R1 = Actor(id="r1", role=ActorRole.FIREFIGHTER)
R2 = Actor(id="r2", role=ActorRole.NGO)


def _assignment(responder_id, role=ResponderRole.FIREFIGHTER):
    return Assignment(
        responder_id=responder_id,
        responder_role=role,
        display_name=f"Responder {responder_id}",
        distance_at_assignment=1200.0,
        assigned_at=NOW.isoformat(),
    )


def _snapshot(status=ReportStatus.PENDING, assigned=(), history=()):
    return ReportSnapshot(
        id=1,
        category=ReportCategory.FLOOD,
        status=status,
        version=3,
        assignments=tuple(_assignment(r) for r in assigned),
        history=tuple(history),
    )


def _apply(snapshot, transition):
    """Snapshot as it would be read back after the transition is written."""
    values = transition.values()
    return ReportSnapshot(
        id=snapshot.id,
        category=snapshot.category,
        status=values["status"],
        version=snapshot.version + 1,
        assignments=tuple(Assignment.from_dict(a) for a in values["assigned_responders"]),
        history=tuple(values["status_history"]),
    )


class TestAssign:

    def test_assign_moves_pending_to_processing(self):
        transition = state_machine.assign(_snapshot(), [_assignment("r1")], AUTHORITY, NOW)

        assert transition.previous_status == ReportStatus.PENDING
        assert transition.status == ReportStatus.PROCESSING
        assert [a.responder_id for a in transition.assignments] == ["r1"]

    def test_assign_records_one_history_entry(self):
        transition = state_machine.assign(_snapshot(), [_assignment("r1")], AUTHORITY, NOW)

        history = transition.values()["status_history"]
        assert history == [{
            "status": "processing",
            "action": "assigned",
            "changedBy": "auth-1",
            "changedByRole": "authority",
            "timestamp": NOW.isoformat(),
        }]

    def test_assign_appends_to_existing_assignees(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1"])
        transition = state_machine.assign(snapshot, [_assignment("r2", ResponderRole.NGO)], AUTHORITY, NOW)

        assert [a.responder_id for a in transition.assignments] == ["r1", "r2"]

    def test_assign_reopens_declined_report(self):
        snapshot = _snapshot(ReportStatus.DECLINED, assigned=["r2"])
        transition = state_machine.assign(snapshot, [_assignment("r3")], AUTHORITY, NOW)

        assert transition.status == ReportStatus.PROCESSING

    def test_duplicate_responder_is_conflict(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1"])

        with pytest.raises(ConflictError):
            state_machine.assign(snapshot, [_assignment("r1")], AUTHORITY, NOW)

    def test_duplicate_within_request_is_conflict(self):
        with pytest.raises(ConflictError):
            state_machine.assign(_snapshot(), [_assignment("r1"), _assignment("r1")], AUTHORITY, NOW)

    def test_empty_assignment_is_invalid(self):
        with pytest.raises(ValidationError):
            state_machine.assign(_snapshot(), [], AUTHORITY, NOW)


class TestResponses:

    def test_accept_keeps_processing(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1"])
        transition = state_machine.accept(snapshot, R1, NOW)

        assert transition.status == ReportStatus.PROCESSING
        assert transition.entry.action == ResponderAction.ACCEPTED
        assert [a.responder_id for a in transition.assignments] == ["r1"]

    def test_accept_by_unassigned_responder_is_forbidden(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1"])

        with pytest.raises(ForbiddenError):
            state_machine.accept(snapshot, R2, NOW)

    def test_sole_decline_returns_to_pending(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1"])
        transition = state_machine.decline(snapshot, R1, NOW)

        assert transition.status == ReportStatus.PENDING
        assert transition.assignments == ()

    def test_partial_decline_marks_declined(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1", "r2"])
        transition = state_machine.decline(snapshot, R1, NOW)

        assert transition.status == ReportStatus.DECLINED
        assert [a.responder_id for a in transition.assignments] == ["r2"]

    def test_accept_after_partial_decline_returns_to_processing(self):
        snapshot = _snapshot(ReportStatus.DECLINED, assigned=["r2"])
        transition = state_machine.accept(snapshot, R2, NOW)

        assert transition.status == ReportStatus.PROCESSING

    def test_decline_by_unassigned_responder_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            state_machine.decline(_snapshot(ReportStatus.PROCESSING, assigned=["r2"]), R1, NOW)

    def test_resolve_by_assignee(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r2"])
        transition = state_machine.resolve(snapshot, R2, NOW)

        assert transition.status == ReportStatus.RESOLVED
        assert transition.entry.changed_by == "r2"
        assert transition.entry.changed_by_role == "ngo"

    def test_resolve_by_authority_without_assignment(self):
        transition = state_machine.resolve(_snapshot(ReportStatus.PENDING), AUTHORITY, NOW)
        assert transition.status == ReportStatus.RESOLVED

    def test_resolve_by_unassigned_responder_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            state_machine.resolve(_snapshot(ReportStatus.PROCESSING, assigned=["r2"]), R1, NOW)

    @pytest.mark.parametrize("value,expected", [
        ("accepted", ResponderAction.ACCEPTED),
        ("DECLINED", ResponderAction.DECLINED),
        (" resolved ", ResponderAction.RESOLVED),
        (ResponderAction.ACCEPTED, ResponderAction.ACCEPTED),
    ])
    def test_parse_response(self, value, expected):
        assert state_machine.parse_response(value) == expected

    @pytest.mark.parametrize("value", ["assigned", "pending", "", None])
    def test_parse_response_rejects_other_values(self, value):
        with pytest.raises(ValidationError):
            state_machine.parse_response(value)


class TestEquipment:

    def test_updates_only_own_assignment(self):
        snapshot = _snapshot(ReportStatus.PROCESSING, assigned=["r1", "r2"])

        transition = state_machine.update_equipment(snapshot, R1, ["Pump", " Rope "])

        by_id = {a.responder_id: a for a in transition.assignments}
        assert by_id["r1"].equipment == ("Pump", "Rope")
        assert by_id["r2"].equipment == ()

    def test_status_and_history_unchanged(self):
        history = [{"status": "processing", "action": "assigned"}]
        snapshot = _snapshot(ReportStatus.DECLINED, assigned=["r1"], history=history)

        transition = state_machine.update_equipment(snapshot, R1, ["Boat"])

        assert transition.entry is None
        assert transition.status == ReportStatus.DECLINED
        assert "status_history" not in transition.values()

    def test_unassigned_responder_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            state_machine.update_equipment(_snapshot(ReportStatus.PROCESSING, assigned=["r1"]), R2, ["Boat"])

    def test_resolved_report_is_conflict(self):
        with pytest.raises(ConflictError):
            state_machine.update_equipment(_snapshot(ReportStatus.RESOLVED, assigned=["r1"]), R1, ["Boat"])


class TestResolvedIsTerminal:
    """No transition succeeds on a resolved report."""

    def setup_method(self):
        self.snapshot = _snapshot(ReportStatus.RESOLVED, assigned=["r1", "r2"])

    def test_assign(self):
        with pytest.raises(ConflictError):
            state_machine.assign(self.snapshot, [_assignment("r3")], AUTHORITY, NOW)

    @pytest.mark.parametrize("action", ["accepted", "declined", "resolved"])
    def test_responder_actions(self, action):
        with pytest.raises(ConflictError):
            state_machine.respond(self.snapshot, R1, action, NOW)

    def test_conflict_checked_before_membership(self):
        """An outsider acting on a resolved report gets Conflict, not Forbidden."""
        outsider = Actor(id="r9", role=ActorRole.FIREFIGHTER)

        with pytest.raises(ConflictError):
            state_machine.decline(self.snapshot, outsider, NOW)

    def test_authority_cannot_resolve_twice(self):
        with pytest.raises(ConflictError):
            state_machine.resolve(self.snapshot, AUTHORITY, NOW)


class TestLifecycleSequence:
    """Walk a report through the full lifecycle."""

    def test_history_grows_by_one_per_transition(self):
        snapshot = _snapshot()

        steps = [
            lambda s: state_machine.assign(s, [_assignment("r1"), _assignment("r2", ResponderRole.NGO)], AUTHORITY, NOW),
            lambda s: state_machine.accept(s, R2, NOW),
            lambda s: state_machine.decline(s, R1, NOW),
            lambda s: state_machine.resolve(s, R2, NOW),
        ]
        statuses = []
        for number, step in enumerate(steps, start=1):
            snapshot = _apply(snapshot, step(snapshot))
            statuses.append(snapshot.status)

            assert len(snapshot.history) == number
            assert snapshot.status in set(ReportStatus)
            assert len(snapshot.assigned_ids) == len(set(snapshot.assigned_ids))

        assert statuses == [
            ReportStatus.PROCESSING,
            ReportStatus.PROCESSING,
            ReportStatus.DECLINED,
            ReportStatus.RESOLVED,
        ]
        assert [h["action"] for h in snapshot.history] == ["assigned", "accepted", "declined", "resolved"]

    def test_assignment_round_trips_through_dict(self):
        assignment = _assignment("r1")
        assert Assignment.from_dict(assignment.to_dict()) == assignment

    def test_stored_assignment_without_equipment(self):
        data = _assignment("r1").to_dict()
        del data["equipment"]

        assert Assignment.from_dict(data).equipment == ()
