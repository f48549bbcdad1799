"""
Scheduling Repositories.

Contracts for the two collaborators the calendar consumes (the appointment
store and the facility/location directory) plus in-memory implementations
used when no clinic API is configured and in tests.
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

import pytz
from pydantic import ValidationError as PydanticValidationError

from core.data import Page, Pagination, Repository
from core.domain import ValidationError
from core.errors import NotFoundError, ValidationFailed

from ..domain.calendar_grid import local_day
from ..models import (
    Appointment,
    AppointmentDraft,
    AppointmentFilters,
    AppointmentPatch,
    AppointmentStatistics,
    AppointmentStatus,
    ConflictCheck,
    Facility,
    Location,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONTRACTS
# =============================================================================

class AppointmentRepository(Repository[Appointment]):
    """Appointment store with the clinic's dedicated lifecycle endpoints."""

    @abstractmethod
    async def reschedule(self, id: int, scheduled_at: datetime) -> Appointment:
        pass

    @abstractmethod
    async def complete(self, id: int, notes: Optional[str] = None) -> Appointment:
        pass

    @abstractmethod
    async def mark_no_show(self, id: int, notes: Optional[str] = None) -> Appointment:
        pass

    @abstractmethod
    async def assign_coach(self, id: int, coach_id: int) -> Appointment:
        pass

    @abstractmethod
    async def statistics(self) -> AppointmentStatistics:
        pass

    @abstractmethod
    async def check_conflict(
        self,
        scheduled_at: datetime,
        end_time: datetime,
        facility_id: Optional[int] = None,
        location_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        appointment_id: Optional[int] = None,
    ) -> ConflictCheck:
        """Overlapping scheduled appointments, excluding appointment_id. Advisory only."""
        pass


class FacilityDirectory(ABC):
    """Read-only facility and location lookup."""

    @abstractmethod
    async def list_facilities(self, status: Optional[str] = "active") -> List[Facility]:
        pass

    @abstractmethod
    async def list_locations_for_facility(self, facility_id: int) -> List[Location]:
        pass


def validation_failed_from(e: PydanticValidationError) -> ValidationFailed:
    """Translate a pydantic error into the engine's field-error form."""
    return ValidationFailed([
        ValidationError(
            field=".".join(str(p) for p in err["loc"]) or "__root__",
            message=err["msg"],
            code=err["type"],
        )
        for err in e.errors()
    ])


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================

class InMemoryAppointmentRepository(AppointmentRepository):
    """
    Dictionary-backed appointment store.

    Mirrors the clinic API's behaviour closely enough for offline use:
    ids are assigned on create, list filters apply, and statistics are
    computed from the stored records. Date filters compare the
    appointment's calendar day in tz, the same day the index buckets by.
    """

    def __init__(
        self,
        appointments: Iterable[Union[Appointment, Dict]] = (),
        tz: Optional[pytz.BaseTzInfo] = None,
    ):
        self.tz = tz or pytz.UTC
        self._records: Dict[int, Appointment] = {}
        for record in appointments:
            appointment = record if isinstance(record, Appointment) else Appointment.model_validate(record)
            self._records[appointment.id] = appointment
        self._next_id = max(self._records, default=0) + 1

    def _require(self, id: int) -> Appointment:
        if id not in self._records:
            raise NotFoundError(f"Appointment {id} not found")
        return self._records[id]

    def _store(self, data: Dict) -> Appointment:
        try:
            appointment = Appointment.model_validate(data)
        except PydanticValidationError as e:
            raise validation_failed_from(e) from e
        self._records[appointment.id] = appointment
        return appointment

    async def get(self, id: int) -> Optional[Appointment]:
        return self._records.get(id)

    async def list(self, filters: Optional[AppointmentFilters] = None) -> Page[Appointment]:
        filters = filters or AppointmentFilters()
        items = [a for a in self._records.values() if self._matches(a, filters)]
        items.sort(key=lambda a: a.scheduled_at)

        if not isinstance(filters.per_page, int):
            return Page(items=items)

        per_page = max(filters.per_page, 1)
        page = max(filters.page or 1, 1)
        last_page = max((len(items) + per_page - 1) // per_page, 1)
        start = (page - 1) * per_page
        return Page(
            items=items[start:start + per_page],
            pagination=Pagination(
                current_page=page,
                last_page=last_page,
                per_page=per_page,
                total=len(items),
            ),
        )

    def _matches(self, appointment: Appointment, filters: AppointmentFilters) -> bool:
        for key in ("patient_id", "coach_id", "provider_id"):
            wanted = getattr(filters, key)
            if wanted is not None and getattr(appointment, key) != wanted:
                return False
        if filters.statuses and appointment.status.value not in filters.statuses:
            return False
        if filters.type and appointment.type.value != filters.type:
            return False
        day = local_day(appointment.scheduled_at, self.tz)
        if filters.date_from and day < filters.date_from:
            return False
        if filters.date_to and day > filters.date_to:
            return False
        if filters.search:
            haystack = f"{appointment.patient_name} {appointment.notes or ''}".lower()
            if filters.search.lower() not in haystack:
                return False
        return True

    async def create(self, payload: AppointmentDraft) -> Appointment:
        data = payload.model_dump(exclude_none=True)
        data["id"] = self._next_id
        appointment = self._store(data)
        self._next_id += 1
        logger.debug(f"Stored appointment {appointment.id}")
        return appointment

    async def update(self, id: int, payload: AppointmentPatch) -> Appointment:
        data = self._require(id).model_dump()
        data.update(payload.changes())
        return self._store(data)

    async def delete(self, id: int) -> None:
        self._require(id)
        del self._records[id]

    async def reschedule(self, id: int, scheduled_at: datetime) -> Appointment:
        data = self._require(id).model_dump()
        data.update(scheduled_at=scheduled_at, status=AppointmentStatus.SCHEDULED)
        return self._store(data)

    async def complete(self, id: int, notes: Optional[str] = None) -> Appointment:
        return await self._set_status(id, AppointmentStatus.COMPLETED, notes)

    async def mark_no_show(self, id: int, notes: Optional[str] = None) -> Appointment:
        return await self._set_status(id, AppointmentStatus.NO_SHOW, notes)

    async def _set_status(self, id: int, status: AppointmentStatus, notes: Optional[str]) -> Appointment:
        data = self._require(id).model_dump()
        data["status"] = status
        if notes is not None:
            data["notes"] = notes
        return self._store(data)

    async def assign_coach(self, id: int, coach_id: int) -> Appointment:
        data = self._require(id).model_dump()
        data["coach_id"] = coach_id
        return self._store(data)

    async def statistics(self) -> AppointmentStatistics:
        appointments = list(self._records.values())
        statuses = Counter(a.status.value for a in appointments)
        return AppointmentStatistics(
            total=len(appointments),
            scheduled=statuses[AppointmentStatus.SCHEDULED.value],
            completed=statuses[AppointmentStatus.COMPLETED.value],
            no_show=statuses[AppointmentStatus.NO_SHOW.value],
            canceled=statuses[AppointmentStatus.CANCELED.value],
            by_type=dict(Counter(a.type.value for a in appointments)),
            by_coach=dict(Counter(str(a.coach_id) for a in appointments if a.coach_id is not None)),
            by_provider=dict(Counter(str(a.provider_id) for a in appointments if a.provider_id is not None)),
        )

    async def check_conflict(
        self,
        scheduled_at: datetime,
        end_time: datetime,
        facility_id: Optional[int] = None,
        location_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        appointment_id: Optional[int] = None,
    ) -> ConflictCheck:
        conflicts = []
        for appointment in self._records.values():
            if appointment.id == appointment_id or appointment.status != AppointmentStatus.SCHEDULED:
                continue
            if facility_id is not None and appointment.facility_id != facility_id:
                continue
            if location_id is not None and appointment.location_id != location_id:
                continue
            if provider_id is not None and appointment.provider_id != provider_id:
                continue
            if scheduled_at < appointment.end_time and end_time > appointment.scheduled_at:
                conflicts.append(appointment)
        return ConflictCheck(has_conflict=bool(conflicts), conflicting_appointments=conflicts)


class InMemoryFacilityDirectory(FacilityDirectory):
    """Facility directory over a fixed list."""

    def __init__(self, facilities: Iterable[Union[Facility, Dict]] = ()):
        self._facilities: Dict[int, Facility] = {}
        for record in facilities:
            facility = record if isinstance(record, Facility) else Facility.model_validate(record)
            self._facilities[facility.id] = facility

    async def list_facilities(self, status: Optional[str] = "active") -> List[Facility]:
        facilities = list(self._facilities.values())
        if status == "active":
            facilities = [f for f in facilities if f.is_active]
        return facilities

    async def list_locations_for_facility(self, facility_id: int) -> List[Location]:
        if facility_id not in self._facilities:
            raise NotFoundError(f"Facility {facility_id} not found")
        return list(self._facilities[facility_id].locations)
