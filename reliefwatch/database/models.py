"""
SQLAlchemy models for ReliefWatch
Reports of every category share one table keyed by a category discriminant.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Float, String, Text, Boolean,
    DateTime, Index, JSON, Enum as SQLEnum
)
from sqlalchemy.orm import declarative_base

from reliefwatch.core.constants import (
    ReportCategory,
    ReportStatus,
    ResponderRole,
    NotificationType,
)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, stored the same way on SQLite and PostgreSQL."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_column(enum_cls, **kwargs) -> Column:
    return Column(
        SQLEnum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
        ),
        **kwargs
    )


def _isoformat(value):
    return value.isoformat() if value else None


class Report(Base):
    """
    Incident or disaster record.

    Assignments and status history are embedded JSON lists owned by the
    report; `version` guards every lifecycle update.
    """
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    category = _enum_column(ReportCategory, nullable=False)

    # Location
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(300))

    # Report details
    name = Column(String(200), nullable=False)
    description = Column(Text)
    danger_level = Column(Integer, nullable=False)
    phone_number = Column(String(30))
    reporter_id = Column(String(64), index=True)

    # Lifecycle
    status = _enum_column(ReportStatus, nullable=False, default=ReportStatus.PENDING)
    visible = Column(Boolean, nullable=False, default=True)
    needs_firefighters = Column(Boolean, nullable=False, default=False)
    needs_ngos = Column(Boolean, nullable=False, default=False)
    assigned_responders = Column(JSON, nullable=False, default=list)
    status_history = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_report_category_created", category, created_at),
        Index("idx_report_status", status),
    )

    def __repr__(self):
        return f"<Report({self.id}, {self.category.value}, status={self.status.value})>"

    @property
    def assigned_ids(self) -> list:
        return [a["responderId"] for a in (self.assigned_responders or [])]

    def to_dict(self) -> dict:
        """Convert to API dictionary."""
        return {
            "id": self.id,
            "category": self.category.value,
            "name": self.name,
            "description": self.description,
            "location": {
                "lat": self.latitude,
                "lon": self.longitude,
                "address": self.address,
            },
            "dangerLevel": self.danger_level,
            "phoneNumber": self.phone_number,
            "reporterId": self.reporter_id,
            "status": self.status.value,
            "visible": self.visible,
            "needsFirefighters": self.needs_firefighters,
            "needsNgos": self.needs_ngos,
            "assignedResponders": list(self.assigned_responders or []),
            "statusHistory": list(self.status_history or []),
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }


class Responder(Base):
    """
    Firefighter or relief organization registered in the directory.

    Read-only from the report workflow's point of view.
    """
    __tablename__ = "responders"

    id = Column(String(64), primary_key=True)
    role = _enum_column(ResponderRole, nullable=False)
    name = Column(String(200), nullable=False)
    contact_info = Column(String(200))
    station = Column(String(200))

    latitude = Column(Float)
    longitude = Column(Float)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_responder_role_active", role, is_active),
    )

    def __repr__(self):
        return f"<Responder({self.id}, {self.role.value}, active={self.is_active})>"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "name": self.name,
            "contactInfo": self.contact_info,
            "station": self.station,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "isActive": self.is_active,
        }


class User(Base):
    """Platform user who receives disaster notifications."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(200))
    email = Column(String(200))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<User({self.id}, active={self.is_active})>"


class Notification(Base):
    """
    Per-user notification.

    `data` references the source report by id only; there is no foreign
    key so reports can be deleted independently.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = _enum_column(NotificationType, nullable=False, default=NotificationType.INFO)
    read = Column(Boolean, nullable=False, default=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_notification_user_created", user_id, created_at),
    )

    def __repr__(self):
        return f"<Notification({self.id}, user={self.user_id}, read={self.read})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "read": self.read,
            "data": self.data or {},
            "createdAt": _isoformat(self.created_at),
        }
