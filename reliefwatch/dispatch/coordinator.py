"""
Assignment coordinator
Applies lifecycle transitions to stored reports with optimistic concurrency
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from reliefwatch.core.config import settings
from reliefwatch.core.constants import ReportStatus, ResponderAction, ResponderRole
from reliefwatch.core.errors import ConflictError, NotFoundError, ValidationError
from reliefwatch.core.geo_utils import haversine_distance
from reliefwatch.core.permissions import Actor, Capability, ensure_capability
from reliefwatch.database.models import Report, utcnow
from reliefwatch.dispatch import state_machine
from reliefwatch.dispatch.state_machine import (
    Assignment,
    ReportSnapshot,
    StatusEntry,
    Transition,
)
from reliefwatch.reports.store import ReportStore
from reliefwatch.responders.directory import ResponderDirectory
from reliefwatch.responders.proximity import Match, nearest

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """Stored report after a transition, with the history entry it added (if any)."""
    report: Report
    entry: Optional[StatusEntry]
    previous_status: ReportStatus
    added: List[Assignment]

    @property
    def changed(self) -> bool:
        return self.previous_status != self.report.status


def roles_for(report: Report) -> List[ResponderRole]:
    """Responder roles a report asks for; both when it does not say."""
    roles = []
    if report.needs_firefighters:
        roles.append(ResponderRole.FIREFIGHTER)
    if report.needs_ngos:
        roles.append(ResponderRole.NGO)
    return roles or list(ResponderRole)


class AssignmentCoordinator:
    """
    Owns the status, assignments and history of every report.

    Each transition reads a snapshot, evaluates the pure state machine and
    writes back with a version-conditional UPDATE. A lost race re-reads the
    report and evaluates again, so membership checks always run against the
    state that is actually written over.
    """

    def __init__(
        self,
        store: ReportStore,
        directory: ResponderDirectory,
        max_retries: Optional[int] = None
    ):
        self.store = store
        self.directory = directory
        self.max_retries = max_retries or settings.assignment_max_retries

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def suggest(
        self,
        report: Report,
        role: Optional[ResponderRole] = None,
        max_distance_meters: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[Match]:
        """
        Rank active, not yet assigned responders by distance to a report.

        Args:
            report: Report to match against
            role: Restrict to one responder role (default: from the report's needs)
            max_distance_meters: Distance cutoff
            limit: Maximum number of suggestions
        """
        roles = [ResponderRole(role)] if role else roles_for(report)
        assigned = set(report.assigned_ids)
        candidates = [r for r in self.directory.list_active(roles) if r.id not in assigned]

        return nearest(
            report.latitude,
            report.longitude,
            candidates,
            max_distance_meters=max_distance_meters,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def assign(
        self,
        category: Any,
        report_id: int,
        actor: Actor,
        responder_ids: Optional[Iterable[str]] = None,
        role: Optional[ResponderRole] = None,
        max_distance_meters: Optional[float] = None,
        limit: Optional[int] = None,
        fields: Optional[Dict[str, Any]] = None
    ) -> TransitionResult:
        """
        Assign responders to a report.

        When responder_ids is None the nearest suitable responders are picked.
        fields are already validated column values written in the same
        conditional update as the assignment, so either both land or neither.

        Raises:
            ForbiddenError: actor may not assign
            NotFoundError: report or responder missing, or nobody in range
            ConflictError: report resolved or responder already assigned
            ValidationError: responder inactive or listed twice
        """
        ensure_capability(actor, Capability.REPORT_ASSIGN)
        report = self.store.get(category, report_id)

        if responder_ids is None:
            matches = self.suggest(report, role, max_distance_meters, limit)
            if not matches:
                raise NotFoundError(
                    f"No available responders near report {report_id}",
                    reportId=report_id,
                )
            picks = [(m.candidate, m.distance_m) for m in matches]
        else:
            picks = self._resolve_responders(report, responder_ids)

        now = utcnow()
        assignments = [Assignment.from_responder(r, d, now) for r, d in picks]

        return self._apply(
            report,
            lambda snapshot: state_machine.assign(snapshot, assignments, actor, now),
            added=assignments,
            fields=fields,
        )

    def respond(self, report_id: int, actor: Actor, action: Any) -> TransitionResult:
        """
        Record a responder answer: accepted, declined or resolved.

        Authority and admin actors may resolve without being assigned.
        """
        action = state_machine.parse_response(action)
        if not (action == ResponderAction.RESOLVED and actor.can(Capability.REPORT_RESOLVE)):
            ensure_capability(actor, Capability.REPORT_RESPOND)

        report = self.store.find(report_id)
        return self._apply(
            report,
            lambda snapshot: state_machine.respond(snapshot, actor, action),
        )

    def accept(self, report_id: int, actor: Actor) -> TransitionResult:
        return self.respond(report_id, actor, ResponderAction.ACCEPTED)

    def decline(self, report_id: int, actor: Actor) -> TransitionResult:
        return self.respond(report_id, actor, ResponderAction.DECLINED)

    def resolve(self, report_id: int, actor: Actor) -> TransitionResult:
        return self.respond(report_id, actor, ResponderAction.RESOLVED)

    def update_equipment(self, report_id: int, actor: Actor, equipment: Iterable[str]) -> TransitionResult:
        """
        Set the equipment a responder brings to a report they are assigned to.

        The status and history are left unchanged.
        """
        ensure_capability(actor, Capability.REPORT_RESPOND)
        if equipment is None or isinstance(equipment, str):
            raise ValidationError("equipment must be a list", field="equipment")
        items = list(equipment)

        report = self.store.find(report_id)
        return self._apply(
            report,
            lambda snapshot: state_machine.update_equipment(snapshot, actor, items),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_responders(self, report: Report, responder_ids: Iterable[str]):
        ids = [str(i) for i in responder_ids]
        if not ids:
            raise ValidationError("At least one responder is required", field="assignedResponders")
        if len(set(ids)) != len(ids):
            raise ValidationError("Responder listed more than once", field="assignedResponders")

        found = self.directory.get_many(ids)
        picks = []
        for responder_id in ids:
            responder = found[responder_id]
            if not responder.is_active:
                raise ValidationError(
                    f"Responder {responder_id} is not active",
                    field="assignedResponders",
                )
            distance = None
            if responder.has_location:
                distance = haversine_distance(
                    report.latitude, report.longitude,
                    responder.latitude, responder.longitude,
                )
            picks.append((responder, distance))
        return picks

    def _apply(
        self,
        report: Report,
        evaluate: Callable[[ReportSnapshot], Transition],
        added: Optional[List[Assignment]] = None,
        fields: Optional[Dict[str, Any]] = None
    ) -> TransitionResult:
        for attempt in range(1, self.max_retries + 1):
            snapshot = ReportSnapshot.from_report(report)
            transition = evaluate(snapshot)
            values = {**(fields or {}), **transition.values()}

            if self.store.compare_and_swap(snapshot.id, snapshot.version, values):
                updated = self.store.find(snapshot.id)
                if transition.entry is not None:
                    logger.info(
                        f"Report {snapshot.id}: {transition.previous_status.value} -> "
                        f"{transition.status.value} ({transition.entry.action.value} by "
                        f"{transition.entry.changed_by_role} {transition.entry.changed_by})"
                    )
                else:
                    logger.info(f"Report {snapshot.id}: assignments updated, status {transition.status.value}")
                if fields:
                    logger.info(f"Report {snapshot.id} updated: {sorted(fields)}")
                return TransitionResult(
                    report=updated,
                    entry=transition.entry,
                    previous_status=transition.previous_status,
                    added=list(added or []),
                )

            logger.warning(
                f"Concurrent update on report {snapshot.id} "
                f"(attempt {attempt}/{self.max_retries}), retrying"
            )
            report = self.store.find(snapshot.id)

        raise ConflictError(
            f"Report {report.id} is being updated concurrently, please retry",
            reportId=report.id,
        )
