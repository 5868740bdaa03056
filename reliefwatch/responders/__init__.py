"""
ReliefWatch - Responders Module
Responder directory and proximity matching.
"""

from reliefwatch.responders.directory import (
    ResponderDirectory,
    UserDirectory,
)
from reliefwatch.responders.proximity import (
    Match,
    nearest,
    describe_match,
)

__all__ = [
    "ResponderDirectory",
    "UserDirectory",
    "Match",
    "nearest",
    "describe_match",
]
