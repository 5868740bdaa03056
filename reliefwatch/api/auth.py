"""
Bearer token verification for the ReliefWatch API

Tokens are HS256 JWTs carrying the caller's id (sub), role and account
status. Issuing tokens belongs to the identity service; create_access_token
exists for local tooling and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt  # PyJWT
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from reliefwatch.core.config import settings
from reliefwatch.core.constants import ActorRole
from reliefwatch.core.errors import AuthenticationError
from reliefwatch.core.permissions import Actor, Capability, ensure_capability

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


# =============================================================================
# TOKENS
# =============================================================================


def create_access_token(
    subject: str,
    role: ActorRole,
    status: str = "active",
    expires_minutes: Optional[int] = None
) -> str:
    """
    Create a signed access token.

    Args:
        subject: Actor id
        role: Actor role
        status: Account status ("active" unless suspended)
        expires_minutes: Lifetime (default settings.access_token_expire_minutes)

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)

    payload = {
        "sub": str(subject),
        "role": ActorRole(role).value,
        "status": status,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Actor:
    """
    Verify a token and turn its claims into an Actor.

    Raises:
        AuthenticationError: expired, badly signed or incomplete token
    """
    try:
        payload: Dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid JWT: {e}")
        raise AuthenticationError("Invalid token")

    try:
        role = ActorRole(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Token carries an unknown role")

    return Actor(id=str(payload["sub"]), role=role, status=payload.get("status", "active"))


# =============================================================================
# DEPENDENCIES
# =============================================================================


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> Actor:
    """Resolve the caller from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization token is required")
    return decode_access_token(credentials.credentials)


def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> Optional[Actor]:
    """Resolve the caller when a token is sent; anonymous otherwise."""
    if credentials is None or not credentials.credentials:
        return None
    return decode_access_token(credentials.credentials)


def require(capability: Capability):
    """Dependency factory: the caller must hold a capability."""

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        ensure_capability(actor, capability)
        return actor

    return dependency
