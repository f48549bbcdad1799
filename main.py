"""
FastAPI Application for the Clinic Calendar.

Exposes the calendar surface (month/week/day payloads) and the scheduling
coordinator's entry points. Each viewer is identified by the X-Session-Id
header.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, time
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import settings
from api_client import client_manager
from core.data import Page
from core.errors import SchedulingError, TransportError
from use_cases.scheduling import SchedulingCoordinator, SchedulingServer
from use_cases.scheduling.data import HttpAppointmentRepository, HttpFacilityDirectory
from use_cases.scheduling.domain.calendar_grid import CalendarView

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Reduce HTTP client logging verbosity
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

# Global instance
server: Optional[SchedulingServer] = None


async def build_server() -> SchedulingServer:
    """Wire the scheduling server against the clinic API, or in memory when unset."""
    if client_manager.is_configured:
        client = await client_manager.get_client()
        return SchedulingServer.from_settings(
            settings,
            repository=HttpAppointmentRepository(client),
            directory=HttpFacilityDirectory(client),
        )
    return SchedulingServer.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    global server

    logger.info("Starting Clinic Calendar...")
    server = await build_server()
    logger.info(f"Scheduling server ready (time zone {server.tz.zone})")

    try:
        await server.refresh()
    except TransportError as e:
        logger.warning(f"Initial appointment load failed, starting with an empty calendar: {e}")

    yield

    # Cleanup
    logger.info("Shutting down...")
    await client_manager.close()


# Create FastAPI app
app = FastAPI(
    title="Clinic Calendar",
    description="Appointment scheduling and calendar engine for clinic operations",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_server() -> SchedulingServer:
    global server
    if server is None:
        server = await build_server()
    return server


async def get_coordinator(
    x_session_id: str = Header(default="default"),
    scheduling: SchedulingServer = Depends(get_server),
) -> SchedulingCoordinator:
    return scheduling.coordinator_for(x_session_id)


def calendar_payload(scheduling: SchedulingServer, coordinator: SchedulingCoordinator) -> Dict[str, Any]:
    payload = scheduling.composer.compose(coordinator.view.value, coordinator.anchor, scheduling.store.index)
    payload["session"] = coordinator.snapshot()
    return payload


# =============================================================================
# REQUEST MODELS
# =============================================================================

class NavigateRequest(BaseModel):
    direction: str  # previous | next | today


class ViewRequest(BaseModel):
    view: CalendarView
    anchor: Optional[date] = None


class OpenCreateRequest(BaseModel):
    day: date
    start_time: Optional[time] = None


class FacilityRequest(BaseModel):
    facility_id: Optional[int] = None


class LocationRequest(BaseModel):
    location_id: Optional[int] = None


class DeleteRequest(BaseModel):
    appointment_id: Optional[int] = None


class NotesRequest(BaseModel):
    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    scheduled_at: datetime


class AssignCoachRequest(BaseModel):
    coach_id: int


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/health")
async def health_check(scheduling: SchedulingServer = Depends(get_server)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "use_case": "clinic_scheduling",
        "clinic_api_configured": client_manager.is_configured,
        "timezone": scheduling.tz.zone,
        "appointments_indexed": len(scheduling.store.index),
    }


# =============================================================================
# CALENDAR SURFACE
# =============================================================================

@app.get("/api/calendar")
async def get_calendar(
    view: Optional[CalendarView] = None,
    anchor: Optional[date] = None,
    scheduling: SchedulingServer = Depends(get_server),
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    """Current view payload; view/anchor query parameters move the viewer first."""
    if view is not None:
        coordinator.set_view(view)
    if anchor is not None:
        coordinator.set_anchor(anchor)
    return calendar_payload(scheduling, coordinator)


@app.post("/api/calendar/navigate")
async def navigate(
    request: NavigateRequest,
    scheduling: SchedulingServer = Depends(get_server),
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    moves = {
        "previous": coordinator.go_previous,
        "next": coordinator.go_next,
        "today": coordinator.go_today,
    }
    if request.direction not in moves:
        return JSONResponse(
            status_code=422,
            content={"error": "ValidationFailed", "message": f"Unknown direction '{request.direction}'"},
        )
    moves[request.direction]()
    return calendar_payload(scheduling, coordinator)


@app.put("/api/calendar/view")
async def change_view(
    request: ViewRequest,
    scheduling: SchedulingServer = Depends(get_server),
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    coordinator.set_view(request.view)
    if request.anchor is not None:
        coordinator.set_anchor(request.anchor)
    return calendar_payload(scheduling, coordinator)


@app.post("/api/calendar/refresh")
async def refresh_calendar(
    scheduling: SchedulingServer = Depends(get_server),
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    await coordinator.refresh()
    return calendar_payload(scheduling, coordinator)


@app.get("/api/facilities")
async def list_facilities(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    facilities = await coordinator.load_facilities()
    return {"facilities": [f.model_dump() for f in facilities]}


@app.get("/api/session")
async def get_session(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    return coordinator.snapshot()


@app.delete("/api/session")
async def end_session(
    x_session_id: str = Header(default="default"),
    scheduling: SchedulingServer = Depends(get_server),
):
    """Forget a viewer's selection state."""
    scheduling.end_session(x_session_id)
    return {"ended": x_session_id}


# =============================================================================
# APPOINTMENT DIALOG
# =============================================================================

@app.post("/api/dialog/create")
async def open_create(request: OpenCreateRequest, coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    coordinator.open_create(request.day, request.start_time)
    return coordinator.snapshot()


@app.post("/api/dialog/edit/{appointment_id}")
async def open_edit(appointment_id: int, coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    await coordinator.open_edit(appointment_id)
    return coordinator.snapshot()


@app.patch("/api/dialog/form")
async def update_form(changes: Dict[str, Any], coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    coordinator.update_form(**changes)
    return coordinator.snapshot()


@app.put("/api/dialog/facility")
async def select_facility(request: FacilityRequest, coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    await coordinator.select_facility(request.facility_id)
    return coordinator.snapshot()


@app.put("/api/dialog/location")
async def select_location(request: LocationRequest, coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    coordinator.select_location(request.location_id)
    return coordinator.snapshot()


@app.post("/api/dialog/submit")
async def submit_dialog(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    appointment = await coordinator.submit()
    return {"appointment": appointment.model_dump(mode="json"), "session": coordinator.snapshot()}


@app.post("/api/dialog/check-conflict")
async def check_conflict(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    """Overlap check against the collaborator for the open form."""
    result = await coordinator.check_conflict()
    return result.model_dump(mode="json")


@app.post("/api/dialog/close")
async def close_dialog(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    coordinator.close_dialog()
    return coordinator.snapshot()


@app.post("/api/dialog/delete-request")
async def request_delete(request: DeleteRequest, coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    appointment_id = coordinator.request_delete(request.appointment_id)
    return {
        "pending_delete_id": appointment_id,
        "confirm": "Are you sure you want to delete this appointment?",
    }


@app.post("/api/dialog/delete-confirm")
async def confirm_delete(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    appointment_id = await coordinator.confirm_delete()
    return {"deleted": appointment_id, "session": coordinator.snapshot()}


@app.post("/api/dialog/delete-cancel")
async def cancel_delete(coordinator: SchedulingCoordinator = Depends(get_coordinator)):
    coordinator.cancel_delete()
    return coordinator.snapshot()


# =============================================================================
# APPOINTMENT ACTIONS
# =============================================================================

def page_payload(page: Page[Any]) -> Dict[str, Any]:
    return {
        "appointments": [a.model_dump(mode="json") if isinstance(a, BaseModel) else a for a in page.items],
        "pagination": page.pagination.to_dict() if page.pagination else None,
        "has_more": page.has_more,
    }


def page_filters(page: Optional[int], per_page: Optional[int]) -> Dict[str, int]:
    return {key: value for key, value in (("page", page), ("per_page", per_page)) if value is not None}


@app.get("/api/appointments/upcoming")
async def upcoming_appointments(
    page: Optional[int] = None,
    per_page: Optional[int] = None,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    return page_payload(await coordinator.list_upcoming(**page_filters(page, per_page)))


@app.get("/api/appointments/past")
async def past_appointments(
    page: Optional[int] = None,
    per_page: Optional[int] = None,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    return page_payload(await coordinator.list_past(**page_filters(page, per_page)))


@app.get("/api/appointments/statistics")
async def appointment_statistics(scheduling: SchedulingServer = Depends(get_server)):
    statistics = await scheduling.lifecycle.statistics()
    return statistics.model_dump()


@app.post("/api/appointments/{appointment_id}/complete")
async def complete_appointment(
    appointment_id: int,
    request: NotesRequest,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    appointment = await coordinator.complete(appointment_id, request.notes)
    return {"appointment": appointment.model_dump(mode="json")}


@app.post("/api/appointments/{appointment_id}/no-show")
async def no_show_appointment(
    appointment_id: int,
    request: NotesRequest,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    appointment = await coordinator.mark_no_show(appointment_id, request.notes)
    return {"appointment": appointment.model_dump(mode="json")}


@app.post("/api/appointments/{appointment_id}/cancel")
async def cancel_appointment(
    appointment_id: int,
    request: NotesRequest,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    appointment = await coordinator.cancel(appointment_id, request.notes)
    return {"appointment": appointment.model_dump(mode="json")}


@app.post("/api/appointments/{appointment_id}/reschedule")
async def reschedule_appointment(
    appointment_id: int,
    request: RescheduleRequest,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    appointment = await coordinator.reschedule(appointment_id, request.scheduled_at)
    return {"appointment": appointment.model_dump(mode="json")}


@app.post("/api/appointments/{appointment_id}/assign-coach")
async def assign_coach(
    appointment_id: int,
    request: AssignCoachRequest,
    coordinator: SchedulingCoordinator = Depends(get_coordinator),
):
    appointment = await coordinator.assign_coach(appointment_id, request.coach_id)
    return {"appointment": appointment.model_dump(mode="json")}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
        log_level=settings.log_level.lower()
    )
