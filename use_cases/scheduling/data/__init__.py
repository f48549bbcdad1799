"""Scheduling data layer - collaborator contracts and adapters."""

from .repositories import (
    AppointmentRepository,
    FacilityDirectory,
    InMemoryAppointmentRepository,
    InMemoryFacilityDirectory,
)
from .http_client import HttpAppointmentRepository, HttpFacilityDirectory

__all__ = [
    "AppointmentRepository",
    "FacilityDirectory",
    "InMemoryAppointmentRepository",
    "InMemoryFacilityDirectory",
    "HttpAppointmentRepository",
    "HttpFacilityDirectory",
]
