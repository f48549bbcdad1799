"""Scheduling domain layer - pure business logic."""

from .calendar_grid import (
    CalendarView,
    TimeSlot,
    days_for_month,
    days_for_week,
    days_for_view,
    local_day,
    shift_anchor,
    time_slots,
    title_for_view,
)
from .index import AppointmentIndex, IndexStore
from .lifecycle import ALLOWED_TRANSITIONS, AppointmentValidator, can_transition
from .policies import AvailabilityPolicy, SlotCandidate

__all__ = [
    "CalendarView",
    "TimeSlot",
    "days_for_month",
    "days_for_week",
    "days_for_view",
    "local_day",
    "shift_anchor",
    "time_slots",
    "title_for_view",
    "AppointmentIndex",
    "IndexStore",
    "ALLOWED_TRANSITIONS",
    "AppointmentValidator",
    "can_transition",
    "AvailabilityPolicy",
    "SlotCandidate",
]
