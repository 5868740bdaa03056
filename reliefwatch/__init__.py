"""
ReliefWatch - Disaster reporting and response coordination.
"""

__version__ = "0.1.0"
