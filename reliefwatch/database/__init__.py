"""
Database module for ReliefWatch
SQLAlchemy persistence for reports, responders, users and notifications
"""

from .connection import DatabaseConnection, get_db, init_db
from .models import (
    Base,
    Report,
    Responder,
    User,
    Notification,
    utcnow,
)

__all__ = [
    "DatabaseConnection",
    "get_db",
    "init_db",
    "Base",
    "Report",
    "Responder",
    "User",
    "Notification",
    "utcnow",
]
