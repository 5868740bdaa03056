"""
Report field validation
Normalizes incoming report fields and rejects missing or out-of-range values
"""

import logging
from typing import Any, Dict, Iterable, Optional

from reliefwatch.core.constants import (
    DANGER_LEVEL_MAX,
    DANGER_LEVEL_MIN,
    ReportCategory,
)
from reliefwatch.core.errors import ValidationError
from reliefwatch.core.geo_utils import is_valid_coordinate

logger = logging.getLogger(__name__)

# Fields a caller may set or patch; lifecycle fields belong to the coordinator
EDITABLE_FIELDS = frozenset({
    "name",
    "description",
    "address",
    "latitude",
    "longitude",
    "danger_level",
    "phone_number",
    "visible",
    "needs_firefighters",
    "needs_ngos",
})

CREATE_ONLY_FIELDS = frozenset({"reporter_id"})

LIFECYCLE_FIELDS = frozenset({
    "id",
    "category",
    "status",
    "assigned_responders",
    "status_history",
    "version",
    "created_at",
    "updated_at",
})


def parse_category(value: Any) -> ReportCategory:
    """Resolve a category name (case-insensitive) to its enum member."""
    if isinstance(value, ReportCategory):
        return value
    try:
        return ReportCategory(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in ReportCategory)
        raise ValidationError(
            f"Unknown category '{value}'. Must be one of: {allowed}",
            field="category",
        )


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _validate_danger_level(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("dangerLevel must be an integer", field="dangerLevel")
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise ValidationError("dangerLevel must be an integer", field="dangerLevel")
    if level != value and not (isinstance(value, str) and value.strip().isdigit()):
        raise ValidationError("dangerLevel must be an integer", field="dangerLevel")
    if not DANGER_LEVEL_MIN <= level <= DANGER_LEVEL_MAX:
        raise ValidationError(
            f"dangerLevel must be between {DANGER_LEVEL_MIN} and {DANGER_LEVEL_MAX}",
            field="dangerLevel",
        )
    return level


def _validate_location(latitude: Any, longitude: Any) -> None:
    if latitude is None or longitude is None:
        raise ValidationError("location (latitude and longitude) is required", field="location")
    if not is_valid_coordinate(latitude, longitude):
        raise ValidationError(
            "location must have latitude in [-90, 90] and longitude in [-180, 180]",
            field="location",
        )


def _reject_unknown(fields: Dict[str, Any], allowed: Iterable[str]) -> None:
    locked = sorted(set(fields) & LIFECYCLE_FIELDS)
    if locked:
        raise ValidationError(
            f"Field(s) {', '.join(locked)} cannot be set directly",
            field=locked[0],
        )
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", field=unknown[0])


def validate_new_report(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate the fields of a report about to be created.

    Args:
        fields: Raw report fields (snake_case)

    Returns:
        Normalized copy of the fields

    Raises:
        ValidationError: if location, name or danger level is missing or invalid
    """
    _reject_unknown(fields, EDITABLE_FIELDS | CREATE_ONLY_FIELDS)

    _validate_location(fields.get("latitude"), fields.get("longitude"))
    if _is_blank(fields.get("name")):
        raise ValidationError("name is required", field="name")
    if fields.get("danger_level") is None:
        raise ValidationError("dangerLevel is required", field="dangerLevel")

    normalized = dict(fields)
    normalized["name"] = fields["name"].strip()
    normalized["latitude"] = float(fields["latitude"])
    normalized["longitude"] = float(fields["longitude"])
    normalized["danger_level"] = _validate_danger_level(fields["danger_level"])
    for flag in ("visible", "needs_firefighters", "needs_ngos"):
        if flag in normalized and normalized[flag] is not None:
            normalized[flag] = bool(normalized[flag])
        else:
            normalized.pop(flag, None)
    return normalized


def validate_patch(patch: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Validate a partial update of descriptive report fields.

    Args:
        patch: Fields to change
        current: Current latitude/longitude, used when only one coordinate changes

    Returns:
        Normalized patch
    """
    _reject_unknown(patch, EDITABLE_FIELDS)
    current = current or {}
    normalized = dict(patch)

    if "name" in patch:
        if _is_blank(patch["name"]):
            raise ValidationError("name is required", field="name")
        normalized["name"] = patch["name"].strip()

    if "danger_level" in patch:
        if patch["danger_level"] is None:
            raise ValidationError("dangerLevel is required", field="dangerLevel")
        normalized["danger_level"] = _validate_danger_level(patch["danger_level"])

    if "latitude" in patch or "longitude" in patch:
        latitude = patch.get("latitude", current.get("latitude"))
        longitude = patch.get("longitude", current.get("longitude"))
        _validate_location(latitude, longitude)
        if "latitude" in patch:
            normalized["latitude"] = float(latitude)
        if "longitude" in patch:
            normalized["longitude"] = float(longitude)

    for flag in ("visible", "needs_firefighters", "needs_ngos"):
        if flag in patch:
            if patch[flag] is None:
                raise ValidationError(f"{flag} cannot be null", field=flag)
            normalized[flag] = bool(patch[flag])

    return normalized
