"""
Cascade Resolver.

Keeps the location picker consistent with the selected facility.
Each fetch is tagged with the facility it was issued for and a sequence
number; a response whose tag is no longer current is discarded, so the
last selected facility always wins.
"""

import logging
from typing import Any, Dict, List, Optional

from core.errors import SchedulingError, ValidationFailed

from .data.repositories import FacilityDirectory
from .models import Location

logger = logging.getLogger(__name__)


class CascadeResolver:
    """Facility -> location selection state for one dialog."""

    def __init__(self, directory: FacilityDirectory):
        self._directory = directory
        self._sequence = 0
        self.facility_id: Optional[int] = None
        self.locations: List[Location] = []
        self.location_id: Optional[int] = None
        self.loading = False
        self.error: Optional[str] = None

    def _is_current(self, sequence: int, facility_id: int) -> bool:
        return sequence == self._sequence and facility_id == self.facility_id

    async def on_facility_selected(self, facility_id: Optional[int], keep_location_id: Optional[int] = None):
        """
        Load the locations of a newly selected facility.

        Args:
            facility_id: The selected facility (None behaves like a clear)
            keep_location_id: Location to re-select once the list arrives,
                used when opening an existing appointment
        """
        if facility_id is None:
            self.on_facility_cleared()
            return

        self._sequence += 1
        sequence = self._sequence
        self.facility_id = facility_id
        self.locations = []
        self.location_id = None
        self.loading = True
        self.error = None

        try:
            locations = await self._directory.list_locations_for_facility(facility_id)
        except SchedulingError as e:
            if not self._is_current(sequence, facility_id):
                logger.debug(f"Ignoring failed location fetch for stale facility {facility_id}")
                return
            logger.error(f"Error fetching locations for facility {facility_id}: {e}")
            self.locations = []
            self.loading = False
            self.error = str(e)
            return

        if not self._is_current(sequence, facility_id):
            logger.debug(f"Discarding stale locations for facility {facility_id}")
            return

        self.locations = list(locations)
        self.loading = False
        if keep_location_id is not None and self.belongs(keep_location_id):
            self.location_id = keep_location_id

    def on_facility_cleared(self):
        """Clear everything; any in-flight fetch will be discarded on arrival."""
        self._sequence += 1
        self.facility_id = None
        self.locations = []
        self.location_id = None
        self.loading = False
        self.error = None

    def belongs(self, location_id: int) -> bool:
        """Whether the location is one of the current facility's locations."""
        return any(location.id == location_id for location in self.locations)

    def select_location(self, location_id: Optional[int]):
        if location_id is None:
            self.location_id = None
            return
        if not self.belongs(location_id):
            raise ValidationFailed.single(
                "location_id",
                "Location does not belong to the selected facility",
                "invalid_choice",
            )
        self.location_id = location_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "facility_id": self.facility_id,
            "location_id": self.location_id,
            "locations": [location.model_dump() for location in self.locations],
            "loading": self.loading,
            "error": self.error,
        }
