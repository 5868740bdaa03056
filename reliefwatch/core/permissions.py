"""
ReliefWatch - Actors and Capabilities
One authenticated-actor type checked against a capability set per role.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet

from reliefwatch.core.constants import ActorRole
from reliefwatch.core.errors import ForbiddenError


class Capability(str, Enum):
    """Operations guarded by role."""
    REPORT_CREATE = "report:create"
    REPORT_MANAGE = "report:manage"          # update fields, visibility, delete
    REPORT_ASSIGN = "report:assign"
    REPORT_RESPOND = "report:respond"        # accept / decline / resolve as assignee
    REPORT_RESOLVE = "report:resolve"        # resolve without being assigned
    REPORT_VIEW_HIDDEN = "report:view_hidden"
    NOTIFICATIONS = "notifications"


_SUPERVISOR = frozenset({
    Capability.REPORT_CREATE,
    Capability.REPORT_MANAGE,
    Capability.REPORT_ASSIGN,
    Capability.REPORT_RESOLVE,
    Capability.REPORT_VIEW_HIDDEN,
    Capability.NOTIFICATIONS,
})

_RESPONDER = frozenset({
    Capability.REPORT_RESPOND,
    Capability.NOTIFICATIONS,
})

ROLE_CAPABILITIES: Dict[ActorRole, FrozenSet[Capability]] = {
    ActorRole.CITIZEN: frozenset({Capability.REPORT_CREATE, Capability.NOTIFICATIONS}),
    ActorRole.FIREFIGHTER: _RESPONDER,
    ActorRole.NGO: _RESPONDER,
    ActorRole.AUTHORITY: _SUPERVISOR,
    ActorRole.ADMIN: _SUPERVISOR,
}


@dataclass(frozen=True)
class Actor:
    """Resolved caller identity from the bearer-token verifier."""
    id: str
    role: ActorRole
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return ROLE_CAPABILITIES.get(self.role, frozenset())

    def can(self, capability: Capability) -> bool:
        return self.is_active and capability in self.capabilities


# Used for transitions triggered by the platform itself (auto-assignment, ingestion)
SYSTEM_ACTOR = Actor(id="system", role=ActorRole.ADMIN)


def ensure_capability(actor: Actor, capability: Capability) -> None:
    """Raise ForbiddenError unless the actor holds the capability."""
    if not actor.is_active:
        raise ForbiddenError(f"Account {actor.id} is not active")
    if capability not in actor.capabilities:
        raise ForbiddenError(
            f"Role '{actor.role.value}' is not allowed to perform {capability.value}"
        )
