"""
Report lifecycle state machine
Pure transition rules for assigning responders and recording their answers
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from reliefwatch.core.constants import (
    ReportCategory,
    ReportStatus,
    ResponderAction,
    ResponderRole,
)
from reliefwatch.core.errors import ConflictError, ForbiddenError, ValidationError
from reliefwatch.core.permissions import Actor, Capability
from reliefwatch.database.models import utcnow


@dataclass(frozen=True)
class Assignment:
    """Link between a report and one responder."""
    responder_id: str
    responder_role: ResponderRole
    display_name: str
    contact_info: Optional[str] = None
    distance_at_assignment: Optional[float] = None
    assigned_at: str = ""
    equipment: Tuple[str, ...] = ()

    @classmethod
    def from_responder(cls, responder, distance_m: Optional[float] = None,
                       now: Optional[datetime] = None) -> "Assignment":
        return cls(
            responder_id=str(responder.id),
            responder_role=ResponderRole(responder.role),
            display_name=responder.name,
            contact_info=responder.contact_info,
            distance_at_assignment=round(distance_m, 1) if distance_m is not None else None,
            assigned_at=(now or utcnow()).isoformat(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        return cls(
            responder_id=str(data["responderId"]),
            responder_role=ResponderRole(data["responderRole"]),
            display_name=data.get("displayName", ""),
            contact_info=data.get("contactInfo"),
            distance_at_assignment=data.get("distanceAtAssignment"),
            assigned_at=data.get("assignedAt", ""),
            equipment=tuple(data.get("equipment") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "responderId": self.responder_id,
            "responderRole": self.responder_role.value,
            "displayName": self.display_name,
            "contactInfo": self.contact_info,
            "distanceAtAssignment": self.distance_at_assignment,
            "assignedAt": self.assigned_at,
            "equipment": list(self.equipment),
        }


@dataclass(frozen=True)
class StatusEntry:
    """One record of the append-only status history."""
    status: ReportStatus
    action: ResponderAction
    changed_by: str
    changed_by_role: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "action": self.action.value,
            "changedBy": self.changed_by,
            "changedByRole": self.changed_by_role,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ReportSnapshot:
    """Lifecycle state of a report as read at a given version."""
    id: int
    category: ReportCategory
    status: ReportStatus
    version: int
    assignments: Tuple[Assignment, ...] = ()
    history: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def from_report(cls, report) -> "ReportSnapshot":
        return cls(
            id=report.id,
            category=ReportCategory(report.category),
            status=ReportStatus(report.status),
            version=report.version,
            assignments=tuple(Assignment.from_dict(a) for a in (report.assigned_responders or [])),
            history=tuple(report.status_history or []),
        )

    @property
    def assigned_ids(self) -> List[str]:
        return [a.responder_id for a in self.assignments]

    def is_assigned(self, responder_id: str) -> bool:
        return str(responder_id) in self.assigned_ids


@dataclass(frozen=True)
class Transition:
    """
    Outcome of a successful transition, ready to be written.

    entry is None for edits that leave the status alone; the history is not
    touched then.
    """
    previous_status: ReportStatus
    status: ReportStatus
    assignments: Tuple[Assignment, ...]
    entry: Optional[StatusEntry]
    history: Tuple[Dict[str, Any], ...] = field(default=())

    def values(self) -> Dict[str, Any]:
        """Column values for the conditional update."""
        values = {
            "status": self.status,
            "assigned_responders": [a.to_dict() for a in self.assignments],
        }
        if self.entry is not None:
            values["status_history"] = list(self.history) + [self.entry.to_dict()]
        return values


def _entry(status: ReportStatus, action: ResponderAction, actor: Actor,
           now: Optional[datetime]) -> StatusEntry:
    return StatusEntry(
        status=status,
        action=action,
        changed_by=actor.id,
        changed_by_role=actor.role.value,
        timestamp=(now or utcnow()).isoformat(),
    )


def _transition(snapshot: ReportSnapshot, status: ReportStatus, assignments: Sequence[Assignment],
                action: ResponderAction, actor: Actor, now: Optional[datetime]) -> Transition:
    return Transition(
        previous_status=snapshot.status,
        status=status,
        assignments=tuple(assignments),
        entry=_entry(status, action, actor, now),
        history=snapshot.history,
    )


def _ensure_open(snapshot: ReportSnapshot) -> None:
    if snapshot.status == ReportStatus.RESOLVED:
        raise ConflictError(
            f"Report {snapshot.id} is already resolved",
            reportId=snapshot.id,
            status=snapshot.status.value,
        )


def _ensure_assigned(snapshot: ReportSnapshot, actor: Actor) -> None:
    if not snapshot.is_assigned(actor.id):
        raise ForbiddenError(
            f"Responder {actor.id} is not assigned to report {snapshot.id}",
            reportId=snapshot.id,
        )


def assign(snapshot: ReportSnapshot, new_assignments: Sequence[Assignment], actor: Actor,
           now: Optional[datetime] = None) -> Transition:
    """
    Attach responders to a report and move it to processing.

    Allowed from pending, processing and declined.

    Raises:
        ConflictError: report resolved, or a responder is already assigned
        ValidationError: no responders given
    """
    _ensure_open(snapshot)
    if not new_assignments:
        raise ValidationError("At least one responder is required", field="assignedResponders")

    seen = set(snapshot.assigned_ids)
    for assignment in new_assignments:
        if assignment.responder_id in seen:
            raise ConflictError(
                f"Responder {assignment.responder_id} is already assigned to report {snapshot.id}",
                reportId=snapshot.id,
                responderId=assignment.responder_id,
            )
        seen.add(assignment.responder_id)

    return _transition(
        snapshot,
        ReportStatus.PROCESSING,
        list(snapshot.assignments) + list(new_assignments),
        ResponderAction.ASSIGNED,
        actor,
        now,
    )


def accept(snapshot: ReportSnapshot, actor: Actor, now: Optional[datetime] = None) -> Transition:
    """Assigned responder confirms; the report stays (or returns to) processing."""
    _ensure_open(snapshot)
    _ensure_assigned(snapshot, actor)
    return _transition(
        snapshot, ReportStatus.PROCESSING, snapshot.assignments,
        ResponderAction.ACCEPTED, actor, now,
    )


def decline(snapshot: ReportSnapshot, actor: Actor, now: Optional[datetime] = None) -> Transition:
    """
    Assigned responder withdraws.

    The responder's assignment is removed. With nobody left the report goes
    back to pending; otherwise it is marked declined.
    """
    _ensure_open(snapshot)
    _ensure_assigned(snapshot, actor)

    remaining = [a for a in snapshot.assignments if a.responder_id != str(actor.id)]
    status = ReportStatus.DECLINED if remaining else ReportStatus.PENDING
    return _transition(snapshot, status, remaining, ResponderAction.DECLINED, actor, now)


def resolve(snapshot: ReportSnapshot, actor: Actor, now: Optional[datetime] = None) -> Transition:
    """Close the report. Assigned responders and supervisors may resolve."""
    _ensure_open(snapshot)
    if not actor.can(Capability.REPORT_RESOLVE):
        _ensure_assigned(snapshot, actor)
    return _transition(
        snapshot, ReportStatus.RESOLVED, snapshot.assignments,
        ResponderAction.RESOLVED, actor, now,
    )


def update_equipment(snapshot: ReportSnapshot, actor: Actor,
                     equipment: Sequence[str]) -> Transition:
    """
    Replace the equipment list on the actor's own assignment.

    Raises:
        ConflictError: report resolved
        ForbiddenError: actor is not assigned to the report
    """
    _ensure_open(snapshot)
    _ensure_assigned(snapshot, actor)

    items = tuple(str(e).strip() for e in equipment if str(e).strip())
    assignments = [
        replace(a, equipment=items) if a.responder_id == str(actor.id) else a
        for a in snapshot.assignments
    ]
    return Transition(
        previous_status=snapshot.status,
        status=snapshot.status,
        assignments=tuple(assignments),
        entry=None,
        history=snapshot.history,
    )


_RESPONSES = {
    ResponderAction.ACCEPTED: accept,
    ResponderAction.DECLINED: decline,
    ResponderAction.RESOLVED: resolve,
}


def parse_response(value: Any) -> ResponderAction:
    """Map a requested status (accepted/declined/resolved) to its action."""
    if isinstance(value, ResponderAction):
        action = value
    else:
        try:
            action = ResponderAction(str(value).strip().lower())
        except ValueError:
            action = None
    if action not in _RESPONSES:
        allowed = ", ".join(a.value for a in _RESPONSES)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {allowed}", field="status")
    return action


def respond(snapshot: ReportSnapshot, actor: Actor, action: ResponderAction,
            now: Optional[datetime] = None) -> Transition:
    """Apply a responder answer (accept, decline or resolve)."""
    return _RESPONSES[parse_response(action)](snapshot, actor, now)
