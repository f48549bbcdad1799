"""
Scheduling Data Models.

Pydantic models for everything that crosses a collaborator boundary:
appointments, facilities and their locations, list filters, statistics,
and the typed create/update payloads built from the appointment dialog.

Wire timestamps are ISO-8601 UTC; the fee may arrive as a string or a
number and is coerced exactly once, here.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.domain import ensure_aware


# =============================================================================
# ENUMS
# =============================================================================

class AppointmentStatus(str, Enum):
    """Lifecycle states of an appointment."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELED = "canceled"
    RESCHEDULED = "rescheduled"


class AppointmentType(str, Enum):
    """Kinds of visit the clinic books."""
    CONSULTATION = "consultation"
    THERAPY = "therapy"
    FOLLOW_UP = "follow_up"
    COACHING = "coaching"
    ONBOARDING = "onboarding"
    SUPPORT = "support"


APPOINTMENT_TYPES = [t.value for t in AppointmentType]


def coerce_fee(value: Any) -> Optional[Decimal]:
    """
    Coerce a wire fee (string or number) into a Decimal.

    None stays None; anything unparseable (including NaN) becomes 0.
    """
    if value is None or isinstance(value, Decimal) and value.is_finite():
        return value
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


# =============================================================================
# FACILITIES
# =============================================================================

class Location(BaseModel):
    """A room or site that belongs to exactly one facility."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""
    city: Optional[str] = None
    state: Optional[str] = None
    location_type: Optional[str] = None


class Facility(BaseModel):
    """A clinic facility; read-only from the calendar's point of view."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""
    status: Optional[str] = None
    is_inactive: bool = False
    color: Optional[str] = None
    locations: List[Location] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return not self.is_inactive and self.status in (None, "active")


# =============================================================================
# APPOINTMENTS
# =============================================================================

class Appointment(BaseModel):
    """An appointment as stored by the clinic API."""
    model_config = ConfigDict(extra="ignore")

    id: int
    patient_id: int
    provider_id: Optional[int] = None
    coach_id: Optional[int] = None
    scheduled_at: datetime
    duration_minutes: int = 30
    type: AppointmentType
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    facility_id: Optional[int] = None
    location_id: Optional[int] = None
    fee: Optional[Decimal] = None
    notes: Optional[str] = None
    service_code: Optional[str] = None
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    # Embedded summaries, display only
    patient: Optional[Dict[str, Any]] = None
    facility: Optional[Dict[str, Any]] = None
    location: Optional[Dict[str, Any]] = None

    @field_validator("scheduled_at")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @field_validator("fee", mode="before")
    @classmethod
    def _coerce_fee(cls, value: Any) -> Optional[Decimal]:
        return coerce_fee(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_map(cls, value: Any) -> Dict[str, Any]:
        return value or {}

    @property
    def end_time(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def patient_name(self) -> str:
        if self.patient:
            name = " ".join(
                part for part in (self.patient.get("first_name"), self.patient.get("last_name")) if part
            )
            if name:
                return name
        return f"Patient #{self.patient_id}"

    @property
    def location_name(self) -> Optional[str]:
        if self.location:
            return self.location.get("name")
        return None


class AppointmentChanges(BaseModel):
    """Fields shared by the create and update payloads."""
    model_config = ConfigDict(extra="ignore")

    patient_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    type: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    provider_id: Optional[int] = None
    coach_id: Optional[int] = None
    facility_id: Optional[int] = None
    location_id: Optional[int] = None
    fee: Optional[Decimal] = None
    notes: Optional[str] = None
    service_code: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("scheduled_at")
    @classmethod
    def _aware_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    @field_validator("fee", mode="before")
    @classmethod
    def _coerce_fee(cls, value: Any) -> Optional[Decimal]:
        return coerce_fee(value)

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller explicitly set."""
        return self.model_dump(exclude_unset=True)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the clinic API."""
        data = self.model_dump(mode="json", exclude_unset=True)
        if "fee" in data and self.fee is not None:
            data["fee"] = float(self.fee)
        return data


class AppointmentDraft(AppointmentChanges):
    """Payload for creating an appointment."""
    duration_minutes: Optional[int] = 30
    status: Optional[AppointmentStatus] = AppointmentStatus.SCHEDULED
    is_recurring: Optional[bool] = False
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude_none=True)
        if self.fee is not None:
            data["fee"] = float(self.fee)
        return data


class AppointmentPatch(AppointmentChanges):
    """Partial update; unset fields are left untouched by the collaborator."""
    pass


class AppointmentForm(BaseModel):
    """
    State of the appointment dialog.

    The end time is always derived from start time plus duration and can
    never be set directly.
    """
    model_config = ConfigDict(extra="ignore")

    appointment_id: Optional[int] = None
    day: date
    start_time: time
    duration_minutes: int = 30
    patient_id: Optional[int] = None
    type: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    provider_id: Optional[int] = None
    coach_id: Optional[int] = None
    facility_id: Optional[int] = None
    location_id: Optional[int] = None
    fee: Optional[Decimal] = None
    notes: Optional[str] = None
    service_code: Optional[str] = None
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("fee", mode="before")
    @classmethod
    def _coerce_fee(cls, value: Any) -> Optional[Decimal]:
        return coerce_fee(value)

    @property
    def is_edit(self) -> bool:
        return self.appointment_id is not None

    @property
    def end_time(self) -> time:
        start = datetime.combine(self.day, self.start_time)
        return (start + timedelta(minutes=self.duration_minutes)).time()

    def scheduled_at(self, tz: pytz.BaseTzInfo) -> datetime:
        """The start as an aware UTC datetime, interpreting day/time in tz."""
        local = tz.localize(datetime.combine(self.day, self.start_time))
        return local.astimezone(pytz.UTC)

    def _fields(self, tz: pytz.BaseTzInfo) -> Dict[str, Any]:
        data = self.model_dump(exclude={"appointment_id", "day", "start_time"})
        data["scheduled_at"] = self.scheduled_at(tz)
        return data

    def to_draft(self, tz: pytz.BaseTzInfo) -> AppointmentDraft:
        return AppointmentDraft(**self._fields(tz))

    def to_patch(self, tz: pytz.BaseTzInfo) -> AppointmentPatch:
        return AppointmentPatch(**self._fields(tz))

    def with_changes(self, **changes: Any) -> "AppointmentForm":
        """Return a re-validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return AppointmentForm.model_validate(data)

    @classmethod
    def from_appointment(cls, appointment: Appointment, tz: pytz.BaseTzInfo) -> "AppointmentForm":
        local = appointment.scheduled_at.astimezone(tz)
        return cls(
            appointment_id=appointment.id,
            day=local.date(),
            start_time=local.time().replace(second=0, microsecond=0, tzinfo=None),
            duration_minutes=appointment.duration_minutes,
            patient_id=appointment.patient_id,
            type=appointment.type.value,
            status=appointment.status,
            provider_id=appointment.provider_id,
            coach_id=appointment.coach_id,
            facility_id=appointment.facility_id,
            location_id=appointment.location_id,
            fee=appointment.fee,
            notes=appointment.notes,
            service_code=appointment.service_code,
            is_recurring=appointment.is_recurring,
            recurring_pattern=appointment.recurring_pattern,
            metadata=dict(appointment.metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["end_time"] = self.end_time.strftime("%H:%M")
        data["start_time"] = self.start_time.strftime("%H:%M")
        return data


# =============================================================================
# QUERIES AND AGGREGATES
# =============================================================================

class AppointmentFilters(BaseModel):
    """Filters accepted by the appointment list endpoint."""
    patient_id: Optional[int] = None
    coach_id: Optional[int] = None
    provider_id: Optional[int] = None
    status: Optional[Union[str, List[str]]] = None
    type: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    page: Optional[int] = None
    per_page: Optional[Union[int, str]] = None

    @classmethod
    def everything(cls) -> "AppointmentFilters":
        """The unpaginated full collection used for index refreshes."""
        return cls(per_page="all")

    @classmethod
    def upcoming(cls, today: date, **kwargs: Any) -> "AppointmentFilters":
        return cls(date_from=today, status=AppointmentStatus.SCHEDULED.value, **kwargs)

    @classmethod
    def past(cls, today: date, **kwargs: Any) -> "AppointmentFilters":
        return cls(
            date_to=today,
            status=[
                AppointmentStatus.COMPLETED.value,
                AppointmentStatus.NO_SHOW.value,
                AppointmentStatus.CANCELED.value,
            ],
            **kwargs,
        )

    @property
    def statuses(self) -> List[str]:
        if self.status is None:
            return []
        if isinstance(self.status, list):
            return list(self.status)
        return [s for s in self.status.split(",") if s]

    def to_params(self) -> Dict[str, str]:
        """Query-string parameters, skipping unset filters."""
        params: Dict[str, str] = {}
        for key, value in self.model_dump(exclude_none=True).items():
            if value == "" or value == []:
                continue
            if isinstance(value, list):
                params[key] = ",".join(str(v) for v in value)
            elif isinstance(value, date):
                params[key] = value.isoformat()
            else:
                params[key] = str(value)
        return params


class AppointmentStatistics(BaseModel):
    """Counts per status, type, coach and provider."""
    model_config = ConfigDict(extra="ignore")

    total: int = 0
    scheduled: int = 0
    completed: int = 0
    no_show: int = 0
    canceled: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_coach: Dict[str, int] = Field(default_factory=dict)
    by_provider: Dict[str, int] = Field(default_factory=dict)


class ConflictCheck(BaseModel):
    """Answer of the collaborator's conflict check."""
    has_conflict: bool = False
    conflicting_appointments: List[Appointment] = Field(default_factory=list)
