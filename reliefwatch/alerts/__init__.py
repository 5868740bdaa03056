"""
ReliefWatch - Alerts Module
User notifications and real-time change events.
"""

from reliefwatch.alerts.notifications import (
    NotificationService,
    disaster_title,
    disaster_message,
)
from reliefwatch.alerts.event_publisher import (
    EventPublisher,
    LoggingEventPublisher,
    WebhookEventPublisher,
    FirebaseTopicPublisher,
    PublishedEvent,
    get_event_publisher,
)

__all__ = [
    # Notifications
    "NotificationService",
    "disaster_title",
    "disaster_message",
    # Events
    "EventPublisher",
    "LoggingEventPublisher",
    "WebhookEventPublisher",
    "FirebaseTopicPublisher",
    "PublishedEvent",
    "get_event_publisher",
]
