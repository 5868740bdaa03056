"""
Report workflow for ReliefWatch
Ties storage, assignment, notifications and events together for the API
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from reliefwatch.alerts.event_publisher import EventPublisher, get_event_publisher
from reliefwatch.alerts.notifications import NotificationService
from reliefwatch.core.constants import (
    EVENT_REPORT_ASSIGNED,
    EVENT_REPORT_STATUS_CHANGED,
    WARNING_FANOUT_FAILED,
    WARNING_PUBLISH_FAILED,
    ReportCategory,
    ReportStatus,
    ResponderRole,
)
from reliefwatch.core.errors import DependencyFailure, NotFoundError, ValidationError
from reliefwatch.core.geo_utils import is_valid_coordinate
from reliefwatch.core.permissions import SYSTEM_ACTOR, Actor, Capability, ensure_capability
from reliefwatch.database.connection import DatabaseConnection, get_db
from reliefwatch.database.models import Notification, Report
from reliefwatch.dispatch.coordinator import AssignmentCoordinator, TransitionResult
from reliefwatch.reports.store import ReportStore
from reliefwatch.reports.validation import parse_category, validate_patch
from reliefwatch.responders.directory import ResponderDirectory, UserDirectory
from reliefwatch.responders.proximity import describe_match, nearest

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """Result of a write, with warnings for side effects that degraded."""
    data: Any
    warnings: List[str] = field(default_factory=list)


def transition_payload(report: Report) -> Dict[str, Any]:
    return {
        "reportId": report.id,
        "category": report.category.value,
        "status": report.status.value,
        "assignedResponders": list(report.assigned_responders or []),
    }


class ReportHandler:
    """
    Handles the report lifecycle on behalf of authenticated actors.

    Storage and transitions fail the request. Notifications and events are
    best-effort and only show up as warnings on the outcome.
    """

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        publisher: Optional[EventPublisher] = None,
        max_retries: Optional[int] = None
    ):
        """
        Initialize report handler.

        Args:
            db: Database connection (default: global connection)
            publisher: Real-time event publisher (default: from settings)
            max_retries: Concurrent-update retries per transition
        """
        self.db = db or get_db()
        self.publisher = publisher or get_event_publisher()

        self.store = ReportStore(self.db)
        self.responders = ResponderDirectory(self.db)
        self.users = UserDirectory(self.db)
        self.coordinator = AssignmentCoordinator(self.store, self.responders, max_retries)
        self.notifications = NotificationService(self.db, self.users)

        logger.info(f"ReportHandler initialized (events via {self.publisher.backend})")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def list_reports(
        self,
        category: Any,
        actor: Optional[Actor] = None,
        include_hidden: bool = False
    ) -> List[Report]:
        """List reports of a category; hidden ones need the view_hidden capability."""
        if include_hidden:
            if actor is None:
                include_hidden = False
            else:
                ensure_capability(actor, Capability.REPORT_VIEW_HIDDEN)
        return self.store.list(category, include_hidden=include_hidden)

    def get_report(self, category: Any, report_id: int, actor: Optional[Actor] = None) -> Report:
        report = self.store.get(category, report_id)
        # Hidden reports do not exist for the public
        if not report.visible and not (actor and actor.can(Capability.REPORT_VIEW_HIDDEN)):
            raise NotFoundError(f"{report.category.label} report {report_id} not found")
        return report

    def create_report(self, category: Any, fields: Dict[str, Any], actor: Actor) -> Outcome:
        """
        Create a report, notify every user and publish new_<category>.

        Args:
            category: Report category
            fields: Report fields (snake_case)
            actor: Submitting actor

        Returns:
            Outcome with the stored report
        """
        ensure_capability(actor, Capability.REPORT_CREATE)
        category = parse_category(category)

        fields = dict(fields)
        fields.setdefault("reporter_id", actor.id)
        report = self.store.create(category, fields)

        warnings: List[str] = []
        self._fan_out(report, category, warnings)
        self._publish(category.event_name, {"count": 1, "data": [report.to_dict()]}, warnings)
        return Outcome(report, warnings)

    def ingest_reports(
        self,
        category: Any,
        records: Iterable[Dict[str, Any]],
        actor: Actor = SYSTEM_ACTOR
    ) -> Outcome:
        """
        Store a batch from an external feed and announce it as one event.

        Ingested records do not fan out to users individually.
        """
        ensure_capability(actor, Capability.REPORT_CREATE)
        category = parse_category(category)

        reports = self.store.bulk_create(category, records)
        warnings: List[str] = []
        if reports:
            self._publish(
                category.event_name,
                {"count": len(reports), "data": [r.to_dict() for r in reports]},
                warnings,
            )
        return Outcome(reports, warnings)

    def update_report(
        self,
        category: Any,
        report_id: int,
        patch: Dict[str, Any],
        actor: Actor,
        responder_ids: Optional[Iterable[str]] = None
    ) -> Outcome:
        """
        Update descriptive fields and optionally add responders.

        responder_ids is the full list the caller wants assigned; ids that
        are already on the report are left as they are. When responders are
        added, the field changes and the assignment are one write: a failed
        assignment leaves the report untouched.
        """
        ensure_capability(actor, Capability.REPORT_MANAGE)
        category = parse_category(category)

        report = self.store.get(category, report_id)

        new_ids: List[str] = []
        if responder_ids is not None:
            assigned = set(report.assigned_ids)
            new_ids = [str(i) for i in responder_ids if str(i) not in assigned]

        if not new_ids:
            if patch:
                report = self.store.update_fields(category, report_id, patch)
            return Outcome(report, [])

        fields = None
        if patch:
            fields = validate_patch(
                patch,
                current={"latitude": report.latitude, "longitude": report.longitude},
            )

        result = self.coordinator.assign(
            category, report_id, actor, responder_ids=new_ids, fields=fields,
        )
        warnings: List[str] = []
        self._after_transition(result, EVENT_REPORT_ASSIGNED, warnings)
        return Outcome(result.report, warnings)

    def set_visibility(self, category: Any, report_id: int, visible: bool, actor: Actor) -> Report:
        ensure_capability(actor, Capability.REPORT_MANAGE)
        return self.store.set_visibility(category, report_id, visible)

    def delete_report(self, category: Any, report_id: int, actor: Actor) -> None:
        ensure_capability(actor, Capability.REPORT_MANAGE)
        self.store.delete(category, report_id)

    def statistics(self, actor: Actor) -> Dict[str, Any]:
        ensure_capability(actor, Capability.REPORT_MANAGE)
        return self.store.statistics()

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def assign(
        self,
        category: Any,
        report_id: int,
        actor: Actor,
        responder_ids: Optional[Iterable[str]] = None,
        role: Optional[ResponderRole] = None,
        max_distance_meters: Optional[float] = None,
        limit: Optional[int] = None
    ) -> Outcome:
        """Assign responders by id, or the nearest suitable ones when no ids are given."""
        result = self.coordinator.assign(
            category,
            report_id,
            actor,
            responder_ids=responder_ids,
            role=role,
            max_distance_meters=max_distance_meters,
            limit=limit,
        )
        warnings: List[str] = []
        self._after_transition(result, EVENT_REPORT_ASSIGNED, warnings)
        return Outcome(result.report, warnings)

    def respond(self, report_id: int, actor: Actor, status: Any) -> Outcome:
        """Apply a responder's accepted / declined / resolved answer."""
        result = self.coordinator.respond(report_id, actor, status)
        warnings: List[str] = []
        self._after_transition(result, EVENT_REPORT_STATUS_CHANGED, warnings)
        return Outcome(result.report, warnings)

    def update_equipment(self, report_id: int, actor: Actor, equipment: Iterable[str]) -> Report:
        """Record the equipment the acting responder brings to a report."""
        return self.coordinator.update_equipment(report_id, actor, equipment).report

    def assigned_reports(
        self,
        actor: Actor,
        statuses: Optional[Iterable[ReportStatus]] = None
    ) -> List[Report]:
        """Reports the acting responder is currently assigned to."""
        ensure_capability(actor, Capability.REPORT_RESPOND)
        return self.store.list_assigned_to(actor.id, statuses)

    def nearby_responders(
        self,
        latitude: float,
        longitude: float,
        limit: Optional[int] = None,
        max_distance_meters: Optional[float] = None,
        role: Optional[ResponderRole] = None
    ) -> List[Dict[str, Any]]:
        """
        Active responders closest to a point, nearest first.

        Returns:
            Responder dictionaries with distance, bearing and direction
        """
        if not is_valid_coordinate(latitude, longitude):
            raise ValidationError(
                "latitude and longitude are required and must be in range",
                field="location",
            )
        if max_distance_meters is not None and max_distance_meters < 0:
            raise ValidationError("maxDistance must not be negative", field="maxDistance")

        roles = [role] if role else None
        matches = nearest(
            latitude,
            longitude,
            self.responders.list_active(roles),
            max_distance_meters=max_distance_meters,
            limit=limit,
        )
        return [describe_match(latitude, longitude, m) for m in matches]

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notifications_for(self, actor: Actor, limit: Optional[int] = None) -> List[Notification]:
        ensure_capability(actor, Capability.NOTIFICATIONS)
        return self.notifications.list_for_user(actor.id, limit)

    def notifications_today(self, actor: Actor) -> List[Notification]:
        ensure_capability(actor, Capability.NOTIFICATIONS)
        return self.notifications.list_today(actor.id)

    def unread_count(self, actor: Actor) -> int:
        ensure_capability(actor, Capability.NOTIFICATIONS)
        return self.notifications.unread_count(actor.id)

    def mark_notification_read(self, notification_id: int, actor: Actor) -> Notification:
        ensure_capability(actor, Capability.NOTIFICATIONS)
        return self.notifications.mark_read(notification_id, actor.id)

    def mark_all_notifications_read(self, actor: Actor) -> int:
        ensure_capability(actor, Capability.NOTIFICATIONS)
        return self.notifications.mark_all_read(actor.id)

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _after_transition(self, result: TransitionResult, event_name: str, warnings: List[str]) -> None:
        try:
            self.notifications.notify_status_change(result.report, result.entry)
        except DependencyFailure as e:
            logger.warning(f"Submitter update skipped: {e.message}")
            warnings.append(WARNING_FANOUT_FAILED)
        self._publish(event_name, transition_payload(result.report), warnings)

    def _fan_out(self, report: Report, category: ReportCategory, warnings: List[str]) -> None:
        try:
            self.notifications.notify_all_users(report, category)
        except DependencyFailure as e:
            logger.warning(f"{e.message} ({e.created} notifications written)")
            warnings.append(WARNING_FANOUT_FAILED)

    def _publish(self, event_name: str, payload: Dict[str, Any], warnings: List[str]) -> None:
        if not self.publisher.publish(event_name, payload):
            warnings.append(WARNING_PUBLISH_FAILED)
