"""
Pytest configuration and fixtures
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from reliefwatch.alerts.event_publisher import LoggingEventPublisher
from reliefwatch.core.constants import ActorRole, ResponderRole
from reliefwatch.core.permissions import Actor
from reliefwatch.database.connection import DatabaseConnection
from reliefwatch.database.models import Responder, User
from reliefwatch.reports.handler import ReportHandler


# Incident site used throughout the tests (Dhaka)
SITE = (23.81, 90.41)

RESPONDERS = [
    # id, role, name, latitude, longitude, active
    ("ff-1", ResponderRole.FIREFIGHTER, "Mirpur Fire Station", 23.82, 90.42, True),
    ("ff-2", ResponderRole.FIREFIGHTER, "Uttara Fire Station", 23.85, 90.45, True),
    ("ngo-1", ResponderRole.NGO, "Red Crescent Dhaka", 23.815, 90.405, True),
    ("ff-far", ResponderRole.FIREFIGHTER, "Sylhet Fire Station", 24.89, 91.87, True),
    ("ff-off", ResponderRole.FIREFIGHTER, "Closed Station", 23.811, 90.411, False),
    ("ngo-mobile", ResponderRole.NGO, "Mobile Relief Team", None, None, True),
]

USERS = [
    ("u-1", "Amina", True),
    ("u-2", "Rahim", True),
    ("u-3", "Karim", True),
    ("u-4", "Suspended", False),
]


@pytest.fixture
def db():
    """Empty in-memory database."""
    database = DatabaseConnection(database_url="sqlite://")
    database.create_tables()
    yield database
    database.close()


@pytest.fixture
def seeded_db(db):
    """Database with the responder and user directories filled in."""
    with db.get_session() as session:
        for rid, role, name, lat, lon, active in RESPONDERS:
            session.add(Responder(
                id=rid,
                role=role,
                name=name,
                contact_info=f"+880-{rid}",
                station=name,
                latitude=lat,
                longitude=lon,
                is_active=active,
            ))
        for uid, name, active in USERS:
            session.add(User(id=uid, name=name, email=f"{uid}@example.org", is_active=active))
    return db


@pytest.fixture
def publisher():
    """Publisher that records every event."""
    return LoggingEventPublisher()


@pytest.fixture
def handler(seeded_db, publisher):
    return ReportHandler(db=seeded_db, publisher=publisher)


@pytest.fixture
def authority():
    return Actor(id="auth-1", role=ActorRole.AUTHORITY)


@pytest.fixture
def citizen():
    return Actor(id="u-1", role=ActorRole.CITIZEN)


@pytest.fixture
def firefighter():
    return Actor(id="ff-1", role=ActorRole.FIREFIGHTER)


@pytest.fixture
def flood_fields():
    """Scenario report: flood in Dhaka, danger level 7."""
    return {
        "name": "Flooded market",
        "description": "Water rising in the market area",
        "latitude": SITE[0],
        "longitude": SITE[1],
        "address": "Karwan Bazar, Dhaka",
        "danger_level": 7,
    }


@pytest.fixture
def client(handler):
    """FastAPI test client bound to the seeded handler."""
    from fastapi.testclient import TestClient
    from reliefwatch.api.main import app, get_handler

    app.dependency_overrides[get_handler] = lambda: handler
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    """Build an Authorization header for an actor id and role."""
    from reliefwatch.api.auth import create_access_token

    def build(actor_id, role, status="active"):
        token = create_access_token(actor_id, ActorRole(role), status=status)
        return {"Authorization": f"Bearer {token}"}

    return build
