"""
ReliefWatch - Reports Module
Report validation and storage. The request workflow built on top of the
store lives in reliefwatch.reports.handler.
"""

from reliefwatch.reports.validation import (
    parse_category,
    validate_new_report,
    validate_patch,
)
from reliefwatch.reports.store import ReportStore

__all__ = [
    # Validation
    "parse_category",
    "validate_new_report",
    "validate_patch",
    # Store
    "ReportStore",
]
