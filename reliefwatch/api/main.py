"""
ReliefWatch - REST API

FastAPI application for disaster reports, responder assignment and
user notifications.

Run with: uvicorn reliefwatch.api.main:app --reload
"""

import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reliefwatch import __version__
from reliefwatch.api.auth import get_current_actor, get_optional_actor, require
from reliefwatch.api.schemas import (
    ApiResponse,
    AssignRequest,
    EquipmentUpdateRequest,
    HealthResponse,
    ModifiedCountResponse,
    ReportCreateRequest,
    ReportUpdateRequest,
    StatusUpdateRequest,
    VisibilityRequest,
)
from reliefwatch.core.config import settings
from reliefwatch.core.constants import ReportStatus, ResponderRole
from reliefwatch.core.errors import ReliefWatchError
from reliefwatch.core.logging import get_logger, log_request, setup_logging
from reliefwatch.core.permissions import Actor, Capability
from reliefwatch.reports.handler import ReportHandler

setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(
    title="ReliefWatch",
    description="Disaster reporting, responder matching and notification API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    log_request(
        logger,
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


# ============================================================================
# Error Handling
# ============================================================================

@app.exception_handler(ReliefWatchError)
async def reliefwatch_error_handler(request: Request, exc: ReliefWatchError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or None
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    body = {"success": False, "message": message, "errorType": "validation"}
    if field:
        body["details"] = {"field": field}
    return JSONResponse(status_code=400, content=body)


# ============================================================================
# Helper Functions
# ============================================================================

# Global handler, created on first use
_report_handler: Optional[ReportHandler] = None


def get_handler() -> ReportHandler:
    """Get the shared report handler."""
    global _report_handler
    if _report_handler is None:
        _report_handler = ReportHandler()
    return _report_handler


def _ok(data=None, warnings: Optional[List[str]] = None) -> ApiResponse:
    return ApiResponse(data=data, warnings=warnings or [])


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check(handler: ReportHandler = Depends(get_handler)):
    """Check API health and database connectivity."""
    database_ok = handler.db.check_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=database_ok,
        event_backend=handler.publisher.backend,
    )


# ============================================================================
# Disaster Report Routes
# ============================================================================

@app.get("/api/v1/disasters/stats/summary", response_model=ApiResponse, tags=["Disasters"])
def get_report_stats(
    actor: Actor = Depends(require(Capability.REPORT_MANAGE)),
    handler: ReportHandler = Depends(get_handler),
):
    """Report counts by category and status."""
    return _ok(handler.statistics(actor))


@app.get("/api/v1/disasters/{category}", response_model=ApiResponse, tags=["Disasters"])
def list_reports(
    category: str,
    include_hidden: bool = Query(False, alias="includeHidden"),
    actor: Optional[Actor] = Depends(get_optional_actor),
    handler: ReportHandler = Depends(get_handler),
):
    """
    List reports of a category, newest first.

    Hidden reports are only included for authority and admin callers.
    """
    reports = handler.list_reports(category, actor=actor, include_hidden=include_hidden)
    return _ok([r.to_dict() for r in reports])


@app.get("/api/v1/disasters/{category}/{report_id}", response_model=ApiResponse, tags=["Disasters"])
def get_report(
    category: str,
    report_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    handler: ReportHandler = Depends(get_handler),
):
    """Get a report by id."""
    return _ok(handler.get_report(category, report_id, actor).to_dict())


@app.post("/api/v1/disasters/{category}", response_model=ApiResponse, status_code=201, tags=["Disasters"])
def create_report(
    category: str,
    request: ReportCreateRequest,
    actor: Actor = Depends(require(Capability.REPORT_CREATE)),
    handler: ReportHandler = Depends(get_handler),
):
    """
    Submit a new report.

    Every active user is notified and subscribers receive new_<category>.
    Notification or event failures are returned as warnings.
    """
    outcome = handler.create_report(category, request.to_fields(), actor)
    return _ok(outcome.data.to_dict(), outcome.warnings)


@app.put("/api/v1/disasters/{category}/{report_id}", response_model=ApiResponse, tags=["Disasters"])
def update_report(
    category: str,
    report_id: int,
    request: ReportUpdateRequest,
    actor: Actor = Depends(require(Capability.REPORT_MANAGE)),
    handler: ReportHandler = Depends(get_handler),
):
    """Update report fields; assignedResponders adds responders by id."""
    outcome = handler.update_report(
        category,
        report_id,
        request.to_fields(),
        actor,
        responder_ids=request.assigned_responders,
    )
    return _ok(outcome.data.to_dict(), outcome.warnings)


@app.delete("/api/v1/disasters/{category}/{report_id}", response_model=ApiResponse, tags=["Disasters"])
def delete_report(
    category: str,
    report_id: int,
    actor: Actor = Depends(require(Capability.REPORT_MANAGE)),
    handler: ReportHandler = Depends(get_handler),
):
    """Delete a report. Existing notifications are kept."""
    handler.delete_report(category, report_id, actor)
    return _ok({"id": report_id, "deleted": True})


@app.patch("/api/v1/disasters/{category}/{report_id}/visibility", response_model=ApiResponse, tags=["Disasters"])
def set_report_visibility(
    category: str,
    report_id: int,
    request: VisibilityRequest,
    actor: Actor = Depends(require(Capability.REPORT_MANAGE)),
    handler: ReportHandler = Depends(get_handler),
):
    """Show or hide a report in public listings."""
    report = handler.set_visibility(category, report_id, request.visible, actor)
    return _ok(report.to_dict())


@app.post("/api/v1/disasters/{category}/{report_id}/assign", response_model=ApiResponse, tags=["Disasters"])
def assign_responders(
    category: str,
    report_id: int,
    request: AssignRequest,
    actor: Actor = Depends(require(Capability.REPORT_ASSIGN)),
    handler: ReportHandler = Depends(get_handler),
):
    """
    Assign responders to a report.

    Without responderIds the nearest active responders of the roles the
    report needs are chosen.
    """
    outcome = handler.assign(
        category,
        report_id,
        actor,
        responder_ids=request.responder_ids,
        role=request.role,
        max_distance_meters=request.max_distance,
        limit=request.limit,
    )
    return _ok(outcome.data.to_dict(), outcome.warnings)


# ============================================================================
# Responder Routes
# ============================================================================

@app.get("/api/v1/responders/nearby", tags=["Responders"])
def find_nearby_responders(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    limit: Optional[int] = Query(None, ge=1, le=50),
    max_distance: Optional[float] = Query(None, alias="maxDistance", ge=0, description="Meters"),
    role: Optional[ResponderRole] = Query(None),
    handler: ReportHandler = Depends(get_handler),
):
    """Active responders nearest to a point (defaults: 5 within 10 km)."""
    responders = handler.nearby_responders(
        latitude,
        longitude,
        limit=limit,
        max_distance_meters=max_distance,
        role=role,
    )
    return {"success": True, "responders": responders}


@app.get("/api/v1/responders/assigned-reports", response_model=ApiResponse, tags=["Responders"])
def get_assigned_reports(
    status: Optional[ReportStatus] = Query(None),
    actor: Actor = Depends(require(Capability.REPORT_RESPOND)),
    handler: ReportHandler = Depends(get_handler),
):
    """Reports the calling responder is assigned to."""
    reports = handler.assigned_reports(actor, [status] if status else None)
    return _ok([r.to_dict() for r in reports])


@app.put("/api/v1/responders/report-status/{report_id}", response_model=ApiResponse, tags=["Responders"])
def update_report_status(
    report_id: int,
    request: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    handler: ReportHandler = Depends(get_handler),
):
    """Accept, decline or resolve an assigned report."""
    outcome = handler.respond(report_id, actor, request.status)
    report = outcome.data
    return _ok(
        {
            "id": report.id,
            "status": report.status.value,
            "assignedResponders": list(report.assigned_responders or []),
        },
        outcome.warnings,
    )


@app.put("/api/v1/responders/equipment/{report_id}", response_model=ApiResponse, tags=["Responders"])
def update_equipment(
    report_id: int,
    request: EquipmentUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    handler: ReportHandler = Depends(get_handler),
):
    """Record the equipment the caller brings to a report they are assigned to."""
    report = handler.update_equipment(report_id, actor, request.equipment)
    return _ok(report.to_dict())


# ============================================================================
# Notification Routes
# ============================================================================

@app.get("/api/v1/notifications", response_model=ApiResponse, tags=["Notifications"])
def list_notifications(
    limit: Optional[int] = Query(None, ge=1, le=200),
    actor: Actor = Depends(require(Capability.NOTIFICATIONS)),
    handler: ReportHandler = Depends(get_handler),
):
    """Most recent notifications of the caller."""
    notifications = handler.notifications_for(actor, limit)
    return _ok([n.to_dict() for n in notifications])


@app.get("/api/v1/notifications/today", response_model=ApiResponse, tags=["Notifications"])
def list_today_notifications(
    actor: Actor = Depends(require(Capability.NOTIFICATIONS)),
    handler: ReportHandler = Depends(get_handler),
):
    """Notifications received since midnight UTC."""
    return _ok([n.to_dict() for n in handler.notifications_today(actor)])


@app.get("/api/v1/notifications/unread-count", response_model=ApiResponse, tags=["Notifications"])
def get_unread_count(
    actor: Actor = Depends(require(Capability.NOTIFICATIONS)),
    handler: ReportHandler = Depends(get_handler),
):
    return _ok({"unreadCount": handler.unread_count(actor)})


@app.patch("/api/v1/notifications/mark-all-read", response_model=ModifiedCountResponse, tags=["Notifications"])
def mark_all_notifications_read(
    actor: Actor = Depends(require(Capability.NOTIFICATIONS)),
    handler: ReportHandler = Depends(get_handler),
):
    return ModifiedCountResponse(modified_count=handler.mark_all_notifications_read(actor))


@app.patch("/api/v1/notifications/{notification_id}/read", response_model=ApiResponse, tags=["Notifications"])
def mark_notification_read(
    notification_id: int,
    actor: Actor = Depends(require(Capability.NOTIFICATIONS)),
    handler: ReportHandler = Depends(get_handler),
):
    """Mark one of the caller's notifications as read."""
    return _ok(handler.mark_notification_read(notification_id, actor).to_dict())


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
