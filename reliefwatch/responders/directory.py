"""
Responder and user directories
Read-only views over the people the report workflow coordinates
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from reliefwatch.core.constants import ResponderRole
from reliefwatch.core.errors import InternalError, NotFoundError
from reliefwatch.database.connection import DatabaseConnection
from reliefwatch.database.models import Responder, User

logger = logging.getLogger(__name__)


class ResponderDirectory:
    """
    Active firefighters and relief organizations with their positions.

    Registration and profile edits happen elsewhere; this class only reads.
    """

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def list_active(self, roles: Optional[Iterable[ResponderRole]] = None) -> List[Responder]:
        """
        List active responders, optionally restricted to some roles.

        Args:
            roles: Responder roles to include (default: all)

        Returns:
            Active responders ordered by id
        """
        stmt = select(Responder).where(Responder.is_active.is_(True))
        if roles:
            stmt = stmt.where(Responder.role.in_([ResponderRole(r) for r in roles]))
        stmt = stmt.order_by(Responder.id)

        try:
            with self.db.get_session() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise InternalError(f"Responder directory unavailable: {e}")

    def get(self, responder_id: str) -> Responder:
        """Get a responder by id or raise NotFoundError."""
        try:
            with self.db.get_session() as session:
                responder = session.get(Responder, responder_id)
        except SQLAlchemyError as e:
            raise InternalError(f"Responder directory unavailable: {e}")

        if responder is None:
            raise NotFoundError(f"Responder {responder_id} not found")
        return responder

    def get_many(self, responder_ids: Iterable[str]) -> Dict[str, Responder]:
        """
        Look up several responders at once.

        Raises:
            NotFoundError: naming the first id that does not exist
        """
        ids = [str(i) for i in responder_ids]
        if not ids:
            return {}

        stmt = select(Responder).where(Responder.id.in_(ids))
        try:
            with self.db.get_session() as session:
                found = {r.id: r for r in session.scalars(stmt).all()}
        except SQLAlchemyError as e:
            raise InternalError(f"Responder directory unavailable: {e}")

        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundError(f"Responder {missing[0]} not found", missing=missing)
        return found


class UserDirectory:
    """Population of platform users who receive disaster notifications."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def active_user_ids(self) -> List[str]:
        """Ids of every active user."""
        stmt = select(User.id).where(User.is_active.is_(True)).order_by(User.id)
        try:
            with self.db.get_session() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise InternalError(f"User directory unavailable: {e}")
