"""
Tests for actor capabilities and bearer tokens
"""
import jwt
import pytest

import sys
sys.path.insert(0, '.')

from reliefwatch.api.auth import create_access_token, decode_access_token
from reliefwatch.core.config import settings
from reliefwatch.core.constants import ActorRole
from reliefwatch.core.errors import AuthenticationError, ForbiddenError
from reliefwatch.core.permissions import Actor, Capability, ensure_capability


class TestCapabilities:
    """Test suite for the role capability table."""

    @pytest.mark.parametrize("role,capability,allowed", [
        (ActorRole.CITIZEN, Capability.REPORT_CREATE, True),
        (ActorRole.CITIZEN, Capability.REPORT_ASSIGN, False),
        (ActorRole.CITIZEN, Capability.REPORT_RESPOND, False),
        (ActorRole.FIREFIGHTER, Capability.REPORT_RESPOND, True),
        (ActorRole.FIREFIGHTER, Capability.REPORT_CREATE, False),
        (ActorRole.NGO, Capability.REPORT_RESPOND, True),
        (ActorRole.NGO, Capability.REPORT_RESOLVE, False),
        (ActorRole.AUTHORITY, Capability.REPORT_ASSIGN, True),
        (ActorRole.AUTHORITY, Capability.REPORT_RESOLVE, True),
        (ActorRole.ADMIN, Capability.REPORT_VIEW_HIDDEN, True),
        (ActorRole.ADMIN, Capability.REPORT_RESPOND, False),
    ])
    def test_role_table(self, role, capability, allowed):
        assert Actor(id="a-1", role=role).can(capability) is allowed

    def test_every_role_reads_notifications(self):
        for role in ActorRole:
            assert Actor(id="a-1", role=role).can(Capability.NOTIFICATIONS)

    def test_ensure_capability(self):
        ensure_capability(Actor(id="auth-1", role=ActorRole.AUTHORITY), Capability.REPORT_ASSIGN)

        with pytest.raises(ForbiddenError):
            ensure_capability(Actor(id="u-1", role=ActorRole.CITIZEN), Capability.REPORT_ASSIGN)

    def test_inactive_actor_has_no_capabilities(self):
        suspended = Actor(id="auth-1", role=ActorRole.AUTHORITY, status="suspended")

        assert not suspended.is_active
        assert not suspended.can(Capability.REPORT_ASSIGN)
        with pytest.raises(ForbiddenError):
            ensure_capability(suspended, Capability.NOTIFICATIONS)

    def test_responders_cannot_manage_reports(self):
        for role in (ActorRole.FIREFIGHTER, ActorRole.NGO):
            actor = Actor(id="r-1", role=role)
            assert actor.can(Capability.REPORT_RESPOND)
            assert not actor.can(Capability.REPORT_MANAGE)
            assert not actor.can(Capability.REPORT_RESOLVE)


class TestAccessTokens:
    """Test suite for bearer token verification."""

    def test_round_trip(self):
        token = create_access_token("ff-1", ActorRole.FIREFIGHTER)

        actor = decode_access_token(token)

        assert actor == Actor(id="ff-1", role=ActorRole.FIREFIGHTER)

    def test_status_is_carried(self):
        token = create_access_token("u-9", ActorRole.CITIZEN, status="suspended")
        assert decode_access_token(token).status == "suspended"

    def test_expired_token(self):
        token = create_access_token("u-1", ActorRole.CITIZEN, expires_minutes=-5)

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)

        assert "expired" in exc_info.value.message

    def test_wrong_signature(self):
        token = jwt.encode(
            {"sub": "u-1", "role": "citizen", "exp": 9999999999},
            "some-other-secret-of-sufficient-length",
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_unknown_role(self):
        token = jwt.encode(
            {"sub": "u-1", "role": "mayor", "exp": 9999999999},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_missing_subject(self):
        token = jwt.encode(
            {"role": "citizen", "exp": 9999999999},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)
