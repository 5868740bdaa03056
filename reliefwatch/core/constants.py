"""
ReliefWatch - Constants and Reference Data
Enumerations and static values used throughout the application.
"""

from enum import Enum
from typing import Dict, Tuple

# =============================================================================
# GEOGRAPHY
# =============================================================================

# Mean Earth radius in meters
EARTH_RADIUS_M: float = 6_371_000.0

LATITUDE_RANGE: Tuple[float, float] = (-90.0, 90.0)
LONGITUDE_RANGE: Tuple[float, float] = (-180.0, 180.0)

# =============================================================================
# REPORTS
# =============================================================================


class ReportCategory(str, Enum):
    """Disaster type partition of reports."""
    EARTHQUAKE = "earthquake"
    FLOOD = "flood"
    FIRE = "fire"
    LANDSLIDE = "landslide"
    CYCLONE = "cyclone"
    TSUNAMI = "tsunami"
    SOS = "sos"
    OTHER = "other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @property
    def event_name(self) -> str:
        """Real-time event emitted when records of this category are created."""
        return f"new_{self.value}"


class ReportStatus(str, Enum):
    """Lifecycle status of a report."""
    PENDING = "pending"
    PROCESSING = "processing"
    RESOLVED = "resolved"
    DECLINED = "declined"


class ResponderAction(str, Enum):
    """Actions recorded in a report's status history."""
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    RESOLVED = "resolved"


DANGER_LEVEL_MIN = 1
DANGER_LEVEL_MAX = 10

CATEGORY_LABELS: Dict[ReportCategory, str] = {
    ReportCategory.EARTHQUAKE: "Earthquake",
    ReportCategory.FLOOD: "Flood",
    ReportCategory.FIRE: "Fire",
    ReportCategory.LANDSLIDE: "Landslide",
    ReportCategory.CYCLONE: "Cyclone",
    ReportCategory.TSUNAMI: "Tsunami",
    ReportCategory.SOS: "SOS",
    ReportCategory.OTHER: "Other",
}

# Safety guidance appended to disaster notifications
CATEGORY_GUIDANCE: Dict[ReportCategory, str] = {
    ReportCategory.EARTHQUAKE: "Drop, cover and hold on. Stay away from windows and damaged buildings.",
    ReportCategory.FLOOD: "Move to higher ground and avoid walking or driving through flood water.",
    ReportCategory.FIRE: "Keep clear of the area and follow evacuation orders from fire services.",
    ReportCategory.LANDSLIDE: "Stay away from slopes and watch for unusual sounds of moving debris.",
    ReportCategory.CYCLONE: "Stay indoors, secure loose objects and follow shelter instructions.",
    ReportCategory.TSUNAMI: "Move inland or to high ground immediately and stay away from the coast.",
    ReportCategory.SOS: "Someone nearby has requested emergency help. Assist only if it is safe.",
    ReportCategory.OTHER: "Please stay alert and follow safety guidelines.",
}

# =============================================================================
# ACTORS AND RESPONDERS
# =============================================================================


class ActorRole(str, Enum):
    """Roles carried by an authenticated actor."""
    CITIZEN = "citizen"
    FIREFIGHTER = "firefighter"
    NGO = "ngo"
    AUTHORITY = "authority"
    ADMIN = "admin"


class ResponderRole(str, Enum):
    """Roles eligible for assignment to a report."""
    FIREFIGHTER = "firefighter"
    NGO = "ngo"


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class NotificationType(str, Enum):
    """Kinds of user notifications."""
    DISASTER = "disaster"
    ALERT = "alert"
    INFO = "info"


# Human-readable status text for submitter updates
STATUS_MESSAGES: Dict[ReportStatus, str] = {
    ReportStatus.PENDING: "is waiting for a responder",
    ReportStatus.PROCESSING: "is being handled by responders",
    ReportStatus.RESOLVED: "has been resolved",
    ReportStatus.DECLINED: "was declined by a responder and is being reviewed",
}

# =============================================================================
# EVENTS
# =============================================================================

EVENT_REPORT_ASSIGNED = "report_assigned"
EVENT_REPORT_STATUS_CHANGED = "report_status_changed"

# Warning flags returned to callers when a side effect degrades
WARNING_FANOUT_FAILED = "notification_fanout_failed"
WARNING_PUBLISH_FAILED = "event_publish_failed"
