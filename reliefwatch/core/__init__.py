"""
ReliefWatch - Core Utilities
Central configuration, constants, errors and geospatial helpers.
"""

from reliefwatch.core.config import settings
from reliefwatch.core.constants import (
    ReportCategory,
    ReportStatus,
    ResponderAction,
    ActorRole,
    ResponderRole,
    NotificationType,
)
from reliefwatch.core.errors import (
    ReliefWatchError,
    ValidationError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    DependencyFailure,
    InternalError,
)
from reliefwatch.core.geo_utils import (
    Point,
    haversine_distance,
    calculate_bearing,
)
from reliefwatch.core.permissions import Actor, Capability, SYSTEM_ACTOR

__all__ = [
    "settings",
    "ReportCategory",
    "ReportStatus",
    "ResponderAction",
    "ActorRole",
    "ResponderRole",
    "NotificationType",
    "ReliefWatchError",
    "ValidationError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "DependencyFailure",
    "InternalError",
    "Point",
    "haversine_distance",
    "calculate_bearing",
    "Actor",
    "Capability",
    "SYSTEM_ACTOR",
]
