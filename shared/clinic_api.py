"""
Clinic REST API Configuration.

Centralized endpoint paths for every collaborator call the calendar makes.
Paths are relative to CLINIC_API_URL (see config.py).
"""

from typing import Dict

# =============================================================================
# APPOINTMENT ENDPOINTS
# =============================================================================

APPOINTMENTS_PATH = "/appointments"

# Action name -> path template (formatted with the appointment id)
APPOINTMENT_ACTIONS: Dict[str, str] = {
    "detail": "/appointments/{id}",
    "reschedule": "/appointments/{id}/reschedule",
    "complete": "/appointments/{id}/complete",
    "no_show": "/appointments/{id}/no-show",
    "assign_coach": "/appointments/{id}/assign-coach",
}

APPOINTMENT_STATISTICS_PATH = "/appointments/statistics"
APPOINTMENT_CONFLICT_PATH = "/appointments/check-conflict"

# =============================================================================
# FACILITY ENDPOINTS
# =============================================================================

FACILITIES_PATH = "/facilities"
FACILITY_LOCATIONS_PATH = "/facilities/{id}/locations"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def appointment_path(action: str, appointment_id: int) -> str:
    """Get the path for an appointment action."""
    if action not in APPOINTMENT_ACTIONS:
        raise ValueError(f"Unknown appointment action: {action}")
    return APPOINTMENT_ACTIONS[action].format(id=appointment_id)


def facility_locations_path(facility_id: int) -> str:
    """Get the locations path for a facility."""
    return FACILITY_LOCATIONS_PATH.format(id=facility_id)
