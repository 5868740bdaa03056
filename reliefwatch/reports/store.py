"""
Report store
Persistence and retrieval of reports, partitioned by category
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError

from reliefwatch.core.constants import ReportCategory, ReportStatus
from reliefwatch.core.errors import InternalError, NotFoundError
from reliefwatch.database.connection import DatabaseConnection
from reliefwatch.database.models import Report, utcnow
from reliefwatch.reports.validation import (
    parse_category,
    validate_new_report,
    validate_patch,
)

logger = logging.getLogger(__name__)


class ReportStore:
    """
    Stores reports of every category in one table.

    Lifecycle fields (status, assignments, history) are only written through
    compare_and_swap so concurrent transitions never overwrite each other.
    """

    def __init__(self, db: DatabaseConnection):
        """
        Initialize report store.

        Args:
            db: Database connection used for every operation
        """
        self.db = db

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, category: Any, fields: Dict[str, Any]) -> Report:
        """
        Create a new report.

        Args:
            category: Report category (enum or name)
            fields: Report fields (snake_case)

        Returns:
            Persisted report with status pending and no assignments

        Raises:
            ValidationError: on missing or out-of-range fields
        """
        category = parse_category(category)
        values = validate_new_report(fields)

        now = utcnow()
        report = Report(
            category=category,
            status=ReportStatus.PENDING,
            assigned_responders=[],
            status_history=[],
            version=1,
            created_at=now,
            updated_at=now,
            **values
        )

        try:
            with self.db.get_session() as session:
                session.add(report)
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to store {category.value} report: {e}")

        logger.info(
            f"New {category.value} report created: {report.id} at "
            f"({report.latitude}, {report.longitude}) danger={report.danger_level}"
        )
        return report

    def bulk_create(self, category: Any, records: Iterable[Dict[str, Any]]) -> List[Report]:
        """
        Create several reports in one transaction.

        Every record is validated first; nothing is written if any is invalid.
        """
        category = parse_category(category)
        validated = [validate_new_report(record) for record in records]
        if not validated:
            return []

        now = utcnow()
        reports = [
            Report(
                category=category,
                status=ReportStatus.PENDING,
                assigned_responders=[],
                status_history=[],
                version=1,
                created_at=now,
                updated_at=now,
                **values
            )
            for values in validated
        ]

        try:
            with self.db.get_session() as session:
                session.add_all(reports)
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to store {category.value} batch: {e}")

        logger.info(f"Stored batch of {len(reports)} {category.value} reports")
        return reports

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, category: Any, report_id: int) -> Report:
        """Get a report by category and id, or raise NotFoundError."""
        category = parse_category(category)
        report = self._load(report_id)
        if report is None or report.category != category:
            raise NotFoundError(f"{category.label} report {report_id} not found")
        return report

    def find(self, report_id: int) -> Report:
        """Get a report by id regardless of its category."""
        report = self._load(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")
        return report

    def list(self, category: Any, include_hidden: bool = False) -> List[Report]:
        """
        List reports of a category, newest first.

        Args:
            category: Report category
            include_hidden: Include reports with visible=False

        Returns:
            Reports ordered by creation time descending
        """
        category = parse_category(category)
        stmt = select(Report).where(Report.category == category)
        if not include_hidden:
            stmt = stmt.where(Report.visible.is_(True))
        stmt = stmt.order_by(Report.created_at.desc(), Report.id.desc())

        return self._fetch_all(stmt)

    def list_assigned_to(
        self,
        responder_id: str,
        statuses: Optional[Iterable[ReportStatus]] = None
    ) -> List[Report]:
        """
        List reports that currently have the responder assigned.

        Args:
            responder_id: Responder id
            statuses: Optional status filter

        Returns:
            Matching reports, newest first
        """
        stmt = select(Report)
        if statuses:
            stmt = stmt.where(Report.status.in_(list(statuses)))
        stmt = stmt.order_by(Report.created_at.desc(), Report.id.desc())

        # Assignments are embedded JSON; membership is checked in Python
        return [r for r in self._fetch_all(stmt) if responder_id in r.assigned_ids]

    def statistics(self) -> Dict[str, Any]:
        """Get report counts by category and status."""
        stmt = select(Report.category, Report.status, func.count(Report.id)).group_by(
            Report.category, Report.status
        )
        try:
            with self.db.get_session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to compute report statistics: {e}")

        by_category: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        total = 0
        for category, status, count in rows:
            by_category[category.value] = by_category.get(category.value, 0) + count
            by_status[status.value] = by_status.get(status.value, 0) + count
            total += count

        resolved = by_status.get(ReportStatus.RESOLVED.value, 0)
        return {
            "totalReports": total,
            "byCategory": by_category,
            "byStatus": by_status,
            "pendingCount": by_status.get(ReportStatus.PENDING.value, 0),
            "resolutionRate": resolved / total if total > 0 else 0,
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_fields(self, category: Any, report_id: int, patch: Dict[str, Any]) -> Report:
        """
        Update descriptive fields of a report.

        Args:
            category: Report category
            report_id: Report id
            patch: Fields to change (lifecycle fields are rejected)

        Returns:
            Updated report
        """
        category = parse_category(category)

        try:
            with self.db.get_session() as session:
                report = session.get(Report, report_id)
                if report is None or report.category != category:
                    raise NotFoundError(f"{category.label} report {report_id} not found")

                values = validate_patch(
                    patch,
                    current={"latitude": report.latitude, "longitude": report.longitude},
                )
                for key, value in values.items():
                    setattr(report, key, value)
                report.updated_at = utcnow()
                # Field edits also move the version so in-flight transitions re-read
                report.version = report.version + 1
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to update report {report_id}: {e}")

        logger.info(f"Report {report_id} updated: {sorted(patch)}")
        return report

    def set_visibility(self, category: Any, report_id: int, visible: bool) -> Report:
        """Show or hide a report in public listings without deleting it."""
        return self.update_fields(category, report_id, {"visible": bool(visible)})

    def delete(self, category: Any, report_id: int) -> None:
        """Delete a report. Notifications referencing it are left untouched."""
        category = parse_category(category)

        try:
            with self.db.get_session() as session:
                report = session.get(Report, report_id)
                if report is None or report.category != category:
                    raise NotFoundError(f"{category.label} report {report_id} not found")
                session.delete(report)
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to delete report {report_id}: {e}")

        logger.info(f"Report {report_id} ({category.value}) deleted")

    def compare_and_swap(
        self,
        report_id: int,
        expected_version: int,
        values: Dict[str, Any]
    ) -> bool:
        """
        Atomically update a report if it is still at the expected version.

        Args:
            report_id: Report id
            expected_version: Version the caller read
            values: Column values to write

        Returns:
            True if the update was applied, False if another writer got there first
        """
        stmt = (
            update(Report)
            .where(Report.id == report_id, Report.version == expected_version)
            .values(version=expected_version + 1, updated_at=utcnow(), **values)
        )

        try:
            with self.db.get_session() as session:
                result = session.execute(stmt)
                applied = result.rowcount == 1
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to update report {report_id}: {e}")

        if not applied:
            logger.debug(f"Stale write on report {report_id} at version {expected_version}")
        return applied

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, report_id: int) -> Optional[Report]:
        try:
            with self.db.get_session() as session:
                return session.get(Report, report_id)
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to load report {report_id}: {e}")

    def _fetch_all(self, stmt) -> List[Report]:
        try:
            with self.db.get_session() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to list reports: {e}")
