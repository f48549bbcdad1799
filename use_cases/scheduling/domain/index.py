"""
Appointment Index.

Buckets a flat appointment collection by the viewer's local calendar day
so the grid can ask "what is on this day" and "what starts in this slot"
without rescanning the whole list.

Records that cannot be parsed are excluded from every bucket and logged;
they never raise.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

import pytz
from pydantic import ValidationError as PydanticValidationError

from ..models import Appointment, AppointmentFilters
from .calendar_grid import local_day, to_local

logger = logging.getLogger(__name__)


def _parse_record(record: Any) -> Optional[Appointment]:
    """Turn a repository record into an Appointment, or None if malformed."""
    if isinstance(record, Appointment):
        return record
    if not isinstance(record, Mapping):
        logger.warning(f"Skipping appointment record of unexpected type {type(record).__name__}")
        return None
    try:
        return Appointment.model_validate(record)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        logger.warning(f"Skipping malformed appointment {record.get('id', '?')}: invalid {fields}")
        return None


class AppointmentIndex:
    """
    Immutable day/slot lookup over one snapshot of appointments.

    A refresh builds a new index rather than mutating this one.
    """

    def __init__(self, records: Iterable[Any] = (), tz: Optional[pytz.BaseTzInfo] = None):
        self.tz = tz or pytz.UTC
        self.excluded = 0
        self._by_id: Dict[int, Appointment] = {}

        for record in records:
            appointment = _parse_record(record)
            if appointment is None:
                self.excluded += 1
                continue
            self._by_id[appointment.id] = appointment

        self._by_day: Dict[date, List[Appointment]] = defaultdict(list)
        for appointment in self._by_id.values():
            self._by_day[local_day(appointment.scheduled_at, self.tz)].append(appointment)
        for bucket in self._by_day.values():
            bucket.sort(key=lambda a: a.scheduled_at)

    def for_date(self, day: date) -> List[Appointment]:
        """Appointments on the given local day, earliest first."""
        return list(self._by_day.get(day, []))

    def for_slot(self, day: date, hour: int, minute: int) -> List[Appointment]:
        """Appointments starting exactly at the given local day, hour and minute."""
        matches = []
        for appointment in self._by_day.get(day, []):
            local = to_local(appointment.scheduled_at, self.tz)
            if local.hour == hour and local.minute == minute:
                matches.append(appointment)
        return matches

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self._by_id.get(appointment_id)

    def without(self, appointment_id: int) -> "AppointmentIndex":
        """A copy of this index minus one appointment."""
        return AppointmentIndex(
            [a for a in self._by_id.values() if a.id != appointment_id],
            tz=self.tz,
        )

    def with_appointment(self, appointment: Appointment) -> "AppointmentIndex":
        """A copy of this index with one appointment added or replaced."""
        records = [a for a in self._by_id.values() if a.id != appointment.id]
        records.append(appointment)
        return AppointmentIndex(records, tz=self.tz)

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Appointment]:
        return iter(sorted(self._by_id.values(), key=lambda a: a.scheduled_at))

    def __contains__(self, appointment_id: object) -> bool:
        return appointment_id in self._by_id


class IndexStore:
    """
    Owns the current AppointmentIndex and swaps it wholesale on refresh.

    Refreshes are last-request-wins: a response that arrives after a newer
    refresh was started is dropped.
    """

    def __init__(self, tz: Optional[pytz.BaseTzInfo] = None):
        self.tz = tz or pytz.UTC
        self._index = AppointmentIndex(tz=self.tz)
        self._sequence = 0

    @property
    def index(self) -> AppointmentIndex:
        return self._index

    async def refresh(self, repository) -> bool:
        """
        Re-fetch the full appointment collection and rebuild the index.

        Returns:
            True if this refresh was applied, False if a newer one superseded it

        Raises:
            TransportError: the collaborator failed; the current index is kept
        """
        self._sequence += 1
        token = self._sequence
        page = await repository.list(AppointmentFilters.everything())
        if token != self._sequence:
            logger.debug(f"Discarding stale appointment refresh #{token} (latest #{self._sequence})")
            return False

        self._index = AppointmentIndex(page.items, tz=self.tz)
        if self._index.excluded:
            logger.warning(f"Refresh excluded {self._index.excluded} malformed appointment(s)")
        logger.info(f"Appointment index refreshed: {len(self._index)} appointment(s)")
        return True

    def upsert(self, appointment: Appointment):
        """Reflect a collaborator-confirmed save before the next refresh lands."""
        self._index = self._index.with_appointment(appointment)

    def discard(self, appointment_id: int):
        """Drop a collaborator-confirmed deletion."""
        self._index = self._index.without(appointment_id)
