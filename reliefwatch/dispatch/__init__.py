"""
ReliefWatch - Dispatch Module
Responder assignment and report lifecycle transitions.
"""

from reliefwatch.dispatch.state_machine import (
    Assignment,
    StatusEntry,
    ReportSnapshot,
    Transition,
)
from reliefwatch.dispatch.coordinator import (
    AssignmentCoordinator,
    TransitionResult,
    roles_for,
)

__all__ = [
    "Assignment",
    "StatusEntry",
    "ReportSnapshot",
    "Transition",
    "AssignmentCoordinator",
    "TransitionResult",
    "roles_for",
]
