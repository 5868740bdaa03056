"""
Request and response models for the ReliefWatch API
JSON keys are camelCase; Python attributes stay snake_case.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from reliefwatch.core.constants import ResponderRole


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Requests
# ============================================================================

class LocationIn(CamelModel):
    """Incident position; range checks happen in report validation."""
    lat: Optional[float] = None
    lon: Optional[float] = None
    address: Optional[str] = Field(default=None, max_length=300)


class ReportFieldsMixin(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    location: Optional[LocationIn] = None
    danger_level: Optional[int] = Field(default=None, description="1 (minor) to 10 (catastrophic)")
    phone_number: Optional[str] = Field(default=None, max_length=30)
    visible: Optional[bool] = None
    needs_firefighters: Optional[bool] = None
    needs_ngos: Optional[bool] = None

    def to_fields(self) -> Dict[str, Any]:
        """Snake_case report fields the client actually sent."""
        sent = self.model_dump(exclude_unset=True, exclude={"location", "assigned_responders"})
        fields = {k: v for k, v in sent.items() if v is not None or k == "description"}

        if self.location is not None:
            location = self.location.model_dump(exclude_unset=True)
            if "lat" in location:
                fields["latitude"] = location["lat"]
            if "lon" in location:
                fields["longitude"] = location["lon"]
            if "address" in location:
                fields["address"] = location["address"]
        return fields


class ReportCreateRequest(ReportFieldsMixin):
    """Request to create a report."""


class ReportUpdateRequest(ReportFieldsMixin):
    """Partial update; assignedResponders lists responder ids to assign."""
    assigned_responders: Optional[List[str]] = None


class VisibilityRequest(CamelModel):
    visible: bool


class AssignRequest(CamelModel):
    """Explicit responder ids, or matching options for automatic selection."""
    responder_ids: Optional[List[str]] = None
    role: Optional[ResponderRole] = None
    max_distance: Optional[float] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=1, le=50)


class StatusUpdateRequest(CamelModel):
    """Responder answer: accepted, declined or resolved."""
    status: str


class EquipmentUpdateRequest(CamelModel):
    equipment: List[str]


# ============================================================================
# Responses
# ============================================================================

class ApiResponse(CamelModel):
    success: bool = True
    data: Any = None
    warnings: List[str] = Field(default_factory=list)


class ModifiedCountResponse(CamelModel):
    success: bool = True
    modified_count: int


class HealthResponse(CamelModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    database: bool
    event_backend: str
