"""
Appointment Lifecycle Rules.

The status state machine and the field rules every saved appointment
must satisfy. Pure: the service in use_cases/scheduling/lifecycle.py
applies these before calling the collaborator.
"""

from decimal import Decimal
from typing import Any, Dict, FrozenSet, List

from core.domain import ValidationError, Validator

from ..models import APPOINTMENT_TYPES, AppointmentStatus


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480  # 8 hours

PAST_DATE_MESSAGE = "Cannot schedule appointments in the past. Please select a future date and time."

# scheduled is the only initial state; every other state is terminal
ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELED,
        AppointmentStatus.RESCHEDULED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
    AppointmentStatus.CANCELED: frozenset(),
    AppointmentStatus.RESCHEDULED: frozenset(),
}


def can_transition(source: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Whether a dedicated lifecycle operation may move source to target."""
    return AppointmentStatus(target) in ALLOWED_TRANSITIONS.get(AppointmentStatus(source), frozenset())


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


class AppointmentValidator(Validator):
    """
    Field rules for an appointment record (draft or merged update).

    Checks:
    - patient, start time and type are present and valid
    - duration between 15 minutes and 8 hours
    - fee is not negative
    - a location is only set together with a facility
    """

    def validate(self, data: Dict[str, Any]) -> List[ValidationError]:
        errors: List[ValidationError] = []

        patient_id = data.get("patient_id")
        if patient_id is None or patient_id < 1:
            errors.append(ValidationError("patient_id", "Patient is required", "required"))

        if data.get("scheduled_at") is None:
            errors.append(ValidationError("scheduled_at", "Date and time are required", "required"))

        appointment_type = _plain(data.get("type"))
        if not appointment_type:
            errors.append(ValidationError("type", "Appointment type is required", "required"))
        elif appointment_type not in APPOINTMENT_TYPES:
            errors.append(ValidationError("type", f"Invalid appointment type '{appointment_type}'", "invalid_choice"))

        duration = data.get("duration_minutes")
        if duration is None:
            errors.append(ValidationError("duration_minutes", "Duration is required", "required"))
        elif duration < MIN_DURATION_MINUTES:
            errors.append(ValidationError("duration_minutes", "Minimum 15 minutes", "min_value"))
        elif duration > MAX_DURATION_MINUTES:
            errors.append(ValidationError("duration_minutes", "Maximum 8 hours", "max_value"))

        fee = data.get("fee")
        if fee is not None and Decimal(fee) < 0:
            errors.append(ValidationError("fee", "Fee cannot be negative", "min_value"))

        if data.get("location_id") is not None and data.get("facility_id") is None:
            errors.append(ValidationError("location_id", "Select a facility before choosing a location", "requires_facility"))

        return errors
