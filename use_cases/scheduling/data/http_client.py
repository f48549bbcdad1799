"""
Clinic REST API adapters.

httpx-backed implementations of the appointment repository and the
facility directory. Every non-success answer is mapped onto the engine's
error taxonomy; nothing here retries.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.data import Page, Pagination
from core.domain import ValidationError
from core.errors import ConflictError, NotFoundError, TransportError, ValidationFailed
from shared.clinic_api import (
    APPOINTMENT_CONFLICT_PATH,
    APPOINTMENT_STATISTICS_PATH,
    APPOINTMENTS_PATH,
    FACILITIES_PATH,
    appointment_path,
    facility_locations_path,
)

from ..models import (
    Appointment,
    AppointmentDraft,
    AppointmentFilters,
    AppointmentPatch,
    AppointmentStatistics,
    ConflictCheck,
    Facility,
    Location,
)
from .repositories import AppointmentRepository, FacilityDirectory

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _field_errors(body: Any) -> List[ValidationError]:
    """Read a {"errors": {field: [messages]}} body into ValidationErrors."""
    errors: List[ValidationError] = []
    if isinstance(body, dict) and isinstance(body.get("errors"), dict):
        for field, messages in body["errors"].items():
            if isinstance(messages, str):
                messages = [messages]
            for message in messages or []:
                errors.append(ValidationError(field=field, message=str(message)))
    if not errors:
        message = body.get("message") if isinstance(body, dict) else None
        errors.append(ValidationError(field="__root__", message=message or "Rejected by the clinic API"))
    return errors


class ClinicApiResource:
    """Base for adapters sharing one AsyncClient."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"❌ {method} {path} failed: {e}")
            raise TransportError(f"Clinic API unreachable: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{path} not found")
        if response.status_code in (409, 422):
            body = self._json(response)
            errors = _field_errors(body)
            logger.info(f"{method} {path} rejected ({response.status_code}): {errors[0].message}")
            if response.status_code == 409:
                raise ConflictError(errors)
            raise ValidationFailed(errors)
        if response.is_error:
            logger.error(f"❌ {method} {path} returned {response.status_code}: {response.text[:200]}")
            raise TransportError(f"Clinic API returned {response.status_code}")

        if response.status_code == 204 or not response.content:
            return None
        return self._json(response)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Clinic API returned invalid JSON: {e}") from e

    @staticmethod
    def _unwrap(body: Any, key: str) -> Any:
        if isinstance(body, dict) and key in body:
            return body[key]
        return body

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, label: str) -> ModelT:
        """Validate a response record; a malformed one is a collaborator failure."""
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"❌ Malformed {label} from the clinic API: {e.error_count()} error(s)")
            raise TransportError(f"Clinic API returned a malformed {label}: {e.error_count()} error(s)") from e


class HttpAppointmentRepository(ClinicApiResource, AppointmentRepository):
    """Appointment store backed by the clinic REST API."""

    def _appointment(self, body: Any) -> Appointment:
        return self._parse(Appointment, self._unwrap(body, "appointment"), "appointment")

    async def get(self, id: int) -> Optional[Appointment]:
        try:
            body = await self._send("GET", appointment_path("detail", id))
        except NotFoundError:
            return None
        return self._appointment(body)

    async def list(self, filters: Optional[AppointmentFilters] = None) -> Page[Any]:
        """
        List appointments.

        Items are returned as raw records; the index validates them and
        drops malformed ones.
        """
        filters = filters or AppointmentFilters()
        body = await self._send("GET", APPOINTMENTS_PATH, params=filters.to_params())
        if isinstance(body, list):
            return Page(items=body)
        body = body or {}
        return Page(
            items=list(body.get("appointments") or body.get("data") or []),
            pagination=Pagination.from_dict(body.get("pagination")),
        )

    async def create(self, payload: AppointmentDraft) -> Appointment:
        body = await self._send("POST", APPOINTMENTS_PATH, json=payload.to_payload())
        appointment = self._appointment(body)
        logger.info(f"Created appointment {appointment.id}")
        return appointment

    async def update(self, id: int, payload: AppointmentPatch) -> Appointment:
        body = await self._send("PUT", appointment_path("detail", id), json=payload.to_payload())
        return self._appointment(body)

    async def delete(self, id: int) -> None:
        await self._send("DELETE", appointment_path("detail", id))
        logger.info(f"Deleted appointment {id}")

    async def reschedule(self, id: int, scheduled_at: datetime) -> Appointment:
        body = await self._send(
            "PATCH",
            appointment_path("reschedule", id),
            json={"scheduled_at": scheduled_at.isoformat()},
        )
        return self._appointment(body)

    async def complete(self, id: int, notes: Optional[str] = None) -> Appointment:
        body = await self._send("PATCH", appointment_path("complete", id), json={"notes": notes})
        return self._appointment(body)

    async def mark_no_show(self, id: int, notes: Optional[str] = None) -> Appointment:
        body = await self._send("PATCH", appointment_path("no_show", id), json={"notes": notes})
        return self._appointment(body)

    async def assign_coach(self, id: int, coach_id: int) -> Appointment:
        body = await self._send("PATCH", appointment_path("assign_coach", id), json={"coach_id": coach_id})
        return self._appointment(body)

    async def statistics(self) -> AppointmentStatistics:
        body = await self._send("GET", APPOINTMENT_STATISTICS_PATH)
        return self._parse(AppointmentStatistics, body or {}, "statistics block")

    async def check_conflict(
        self,
        scheduled_at: datetime,
        end_time: datetime,
        facility_id: Optional[int] = None,
        location_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        appointment_id: Optional[int] = None,
    ) -> ConflictCheck:
        payload: Dict[str, Any] = {
            "scheduled_at": scheduled_at.isoformat(),
            "end_time": end_time.isoformat(),
        }
        for key, value in (
            ("facility_id", facility_id),
            ("location_id", location_id),
            ("provider_id", provider_id),
            ("appointment_id", appointment_id),
        ):
            if value is not None:
                payload[key] = value

        body = await self._send("POST", APPOINTMENT_CONFLICT_PATH, json=payload) or {}
        return ConflictCheck(
            has_conflict=bool(body.get("hasConflict", body.get("has_conflict", False))),
            conflicting_appointments=[
                self._parse(Appointment, a, "conflicting appointment")
                for a in body.get("conflictingAppointments") or body.get("conflicting_appointments") or []
            ],
        )


class HttpFacilityDirectory(ClinicApiResource, FacilityDirectory):
    """Facility and location lookup backed by the clinic REST API."""

    async def list_facilities(self, status: Optional[str] = "active") -> List[Facility]:
        params = {"status": status} if status else None
        body = await self._send("GET", FACILITIES_PATH, params=params)
        return [self._parse(Facility, f, "facility") for f in self._unwrap(body, "facilities") or []]

    async def list_locations_for_facility(self, facility_id: int) -> List[Location]:
        body = await self._send("GET", facility_locations_path(facility_id))
        return [self._parse(Location, loc, "location") for loc in self._unwrap(body, "locations") or []]
