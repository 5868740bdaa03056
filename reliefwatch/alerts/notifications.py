"""
Notification service for ReliefWatch
Per-user disaster notifications and their read state
"""

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from reliefwatch.core.config import settings
from reliefwatch.core.constants import (
    CATEGORY_GUIDANCE,
    STATUS_MESSAGES,
    NotificationType,
    ReportCategory,
    ReportStatus,
)
from reliefwatch.core.errors import (
    DependencyFailure,
    InternalError,
    NotFoundError,
    ReliefWatchError,
)
from reliefwatch.database.connection import DatabaseConnection
from reliefwatch.database.models import Notification, Report, utcnow
from reliefwatch.responders.directory import UserDirectory

logger = logging.getLogger(__name__)


def _place(report: Report) -> str:
    if report.address:
        return report.address
    return f"{report.latitude:.4f}, {report.longitude:.4f}"


def disaster_title(category: ReportCategory) -> str:
    return f"New {category.label} Disaster Alert"


def disaster_message(report: Report, category: ReportCategory) -> str:
    return (
        f"A new {category.label.lower()} disaster has been reported at {_place(report)}. "
        f"Danger level: {report.danger_level}. {CATEGORY_GUIDANCE[category]}"
    )


def disaster_payload(report: Report, category: ReportCategory) -> Dict[str, Any]:
    """Notification data; references the report by id only."""
    return {
        "reportId": report.id,
        "category": category.value,
        "location": {
            "lat": report.latitude,
            "lon": report.longitude,
            "address": report.address,
        },
        "dangerLevel": report.danger_level,
    }


class NotificationService:
    """
    Writes and reads user notifications.

    Fan-out is best-effort: it runs after the report is stored and its
    failures are raised as DependencyFailure for the caller to downgrade.
    """

    def __init__(
        self,
        db: DatabaseConnection,
        users: Optional[UserDirectory] = None,
        batch_size: Optional[int] = None
    ):
        """
        Initialize notification service.

        Args:
            db: Database connection
            users: Directory of notification recipients
            batch_size: Rows inserted per transaction during fan-out
        """
        self.db = db
        self.users = users or UserDirectory(db)
        self.batch_size = batch_size or settings.notification_batch_size

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def notify_all_users(self, report: Report, category: Optional[ReportCategory] = None) -> int:
        """
        Create one disaster notification per active user.

        Args:
            report: Newly created report
            category: Report category (default: the report's own)

        Returns:
            Number of notifications created

        Raises:
            DependencyFailure: carrying the number already written
        """
        category = ReportCategory(category or report.category)

        try:
            user_ids = self.users.active_user_ids()
        except ReliefWatchError as e:
            raise DependencyFailure(f"Could not read notification recipients: {e.message}", created=0)

        title = disaster_title(category)
        message = disaster_message(report, category)
        payload = disaster_payload(report, category)

        created = 0
        for start in range(0, len(user_ids), self.batch_size):
            batch = user_ids[start:start + self.batch_size]
            now = utcnow()
            try:
                with self.db.get_session() as session:
                    session.add_all([
                        Notification(
                            user_id=user_id,
                            title=title,
                            message=message,
                            type=NotificationType.DISASTER,
                            read=False,
                            data=dict(payload),
                            created_at=now,
                        )
                        for user_id in batch
                    ])
            except SQLAlchemyError as e:
                logger.error(
                    f"Notification fan-out for report {report.id} stopped after "
                    f"{created}/{len(user_ids)}: {e}"
                )
                raise DependencyFailure(
                    f"Notification fan-out incomplete for report {report.id}",
                    created=created,
                    reportId=report.id,
                )
            created += len(batch)

        logger.info(f"Created {created} notifications for {category.value} report {report.id}")
        return created

    def notify_status_change(self, report: Report, entry: Any) -> Optional[Notification]:
        """
        Tell the report's submitter that its status changed.

        Args:
            report: Report after the transition
            entry: History entry of the transition

        Returns:
            The notification, or None for reports without a submitter
        """
        if not report.reporter_id:
            return None

        category = ReportCategory(report.category)
        status = ReportStatus(report.status)
        notification = Notification(
            user_id=report.reporter_id,
            title=f"Update on your {category.label} report",
            message=f"Your report \"{report.name}\" {STATUS_MESSAGES[status]}.",
            type=NotificationType.INFO,
            read=False,
            data={
                "reportId": report.id,
                "category": category.value,
                "status": status.value,
                "action": entry.action.value,
            },
            created_at=utcnow(),
        )

        try:
            with self.db.get_session() as session:
                session.add(notification)
        except SQLAlchemyError as e:
            raise DependencyFailure(
                f"Could not notify submitter of report {report.id}: {e}",
                created=0,
                reportId=report.id,
            )
        return notification

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def list_for_user(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
        """Most recent notifications of a user, newest first."""
        limit = limit or settings.notification_list_limit
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return self._fetch_all(stmt)

    def list_today(self, user_id: str, now: Optional[datetime] = None) -> List[Notification]:
        """Notifications a user received since midnight UTC."""
        midnight = datetime.combine((now or utcnow()).date(), time.min)
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id, Notification.created_at >= midnight)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return self._fetch_all(stmt)

    def unread_count(self, user_id: str) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
        try:
            with self.db.get_session() as session:
                return session.scalar(stmt) or 0
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to count notifications: {e}")

    def mark_read(self, notification_id: int, user_id: str) -> Notification:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFoundError: notification missing or owned by someone else
        """
        try:
            with self.db.get_session() as session:
                notification = session.get(Notification, notification_id)
                if notification is None or notification.user_id != user_id:
                    raise NotFoundError(f"Notification {notification_id} not found")
                notification.read = True
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to update notification {notification_id}: {e}")
        return notification

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user as read; returns how many changed."""
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        try:
            with self.db.get_session() as session:
                modified = session.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to update notifications: {e}")

        logger.info(f"Marked {modified} notifications read for user {user_id}")
        return modified

    def _fetch_all(self, stmt) -> List[Notification]:
        try:
            with self.db.get_session() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to list notifications: {e}")
