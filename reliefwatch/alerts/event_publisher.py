"""
Real-time event publisher for ReliefWatch
Forwards change events to subscribers via a webhook relay or Firebase topics
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from reliefwatch.core.config import settings
from reliefwatch.database.models import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PublishedEvent:
    """Event handed to the real-time channel."""
    name: str
    payload: Dict[str, Any]
    published_at: datetime = field(default_factory=utcnow)


class EventPublisher:
    """
    Publish contract for the real-time channel.

    publish() never raises: delivery problems are logged and reported
    through the boolean return value only.
    """

    backend = "base"

    def publish(self, event_name: str, payload: Dict[str, Any]) -> bool:
        try:
            self._send(event_name, payload)
        except Exception as e:
            logger.error(f"Failed to publish {event_name} via {self.backend}: {e}")
            return False
        logger.debug(f"Published {event_name} via {self.backend}")
        return True

    def _send(self, event_name: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingEventPublisher(EventPublisher):
    """Keeps published events in memory and logs them. Default backend."""

    backend = "log"

    def __init__(self):
        self.events: List[PublishedEvent] = []

    def _send(self, event_name: str, payload: Dict[str, Any]) -> None:
        self.events.append(PublishedEvent(name=event_name, payload=payload))
        logger.info(f"[EVENT] {event_name}: {json.dumps(payload, default=str)[:200]}")

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        self.events.clear()


class WebhookEventPublisher(EventPublisher):
    """
    Posts events to an HTTP relay that owns the subscriber connections.

    Body: {"event": <name>, "payload": <payload>, "timestamp": <iso>}
    """

    backend = "webhook"

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize webhook publisher.

        Args:
            url: Relay endpoint
            timeout: Request timeout in seconds
        """
        self.url = url or settings.event_webhook_url
        self.timeout = timeout or settings.event_webhook_timeout_seconds

        if not self.url:
            raise ValueError("Webhook URL is required for the webhook event backend")

    def _send(self, event_name: str, payload: Dict[str, Any]) -> None:
        body = {
            "event": event_name,
            "payload": payload,
            "timestamp": utcnow().isoformat(),
        }
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.url, json=body)
            response.raise_for_status()


class FirebaseTopicPublisher(EventPublisher):
    """
    Sends events as Firebase Cloud Messaging data messages.

    Each event goes to the topic "<prefix>_<event name>", so mobile and web
    clients subscribe per category (e.g. reliefwatch_new_flood).
    """

    backend = "firebase"

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        topic_prefix: Optional[str] = None
    ):
        """
        Initialize Firebase publisher.

        Args:
            credentials_path: Path to Firebase service account JSON
            topic_prefix: Prefix of every topic name
        """
        self.credentials_path = credentials_path or settings.firebase_credentials_path
        self.topic_prefix = topic_prefix or settings.firebase_topic_prefix

        self._app = None
        self._initialized = False

        if self.credentials_path:
            self._initialize_firebase()

    def _initialize_firebase(self) -> None:
        """Initialize Firebase Admin SDK."""
        import firebase_admin
        from firebase_admin import credentials

        try:
            cred = credentials.Certificate(self.credentials_path)
            self._app = firebase_admin.initialize_app(cred, name="reliefwatch-events")
            self._initialized = True
            logger.info("Firebase event publisher initialized")

        except FileNotFoundError:
            logger.warning(f"Firebase credentials not found: {self.credentials_path}")
        except ValueError as e:
            logger.error(f"Failed to initialize Firebase: {e}")

    @property
    def is_configured(self) -> bool:
        return self._initialized

    def topic_for(self, event_name: str) -> str:
        return f"{self.topic_prefix}_{event_name}".lower().replace(" ", "_")

    def _send(self, event_name: str, payload: Dict[str, Any]) -> None:
        if not self.is_configured:
            raise RuntimeError("Firebase is not configured")

        from firebase_admin import messaging

        # FCM data values must be strings
        message = messaging.Message(
            data={
                "event": event_name,
                "payload": json.dumps(payload, default=str),
            },
            topic=self.topic_for(event_name),
        )
        response = messaging.send(message, app=self._app)
        logger.info(f"Event {event_name} sent to topic {self.topic_for(event_name)}: {response}")


def get_event_publisher(backend: Optional[str] = None) -> EventPublisher:
    """
    Get the event publisher selected by settings.event_backend.

    Falls back to the logging publisher when the chosen backend is not
    configured.
    """
    backend = (backend or settings.event_backend).lower()

    if backend == "webhook":
        if settings.event_webhook_url:
            return WebhookEventPublisher()
        logger.warning("EVENT_WEBHOOK_URL not set, using logging event publisher")

    elif backend == "firebase":
        publisher = FirebaseTopicPublisher()
        if publisher.is_configured:
            return publisher
        logger.warning("Firebase not configured, using logging event publisher")

    elif backend != "log":
        logger.warning(f"Unknown event backend '{backend}', using logging event publisher")

    return LoggingEventPublisher()
