"""
Shared modules for the Clinic Calendar.

This package contains collaborator configuration used across the application.
"""

from shared.clinic_api import (
    APPOINTMENTS_PATH,
    FACILITIES_PATH,
    appointment_path,
    facility_locations_path,
)

__all__ = [
    "APPOINTMENTS_PATH",
    "FACILITIES_PATH",
    "appointment_path",
    "facility_locations_path",
]
