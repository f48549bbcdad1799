"""
Scheduling Server.

Builds the shared pieces (collaborators, index store, policy, lifecycle,
composer) once and hands out one SchedulingCoordinator per session.
"""

import logging
from datetime import datetime, time
from typing import Dict, Optional

from core.clock import Clock, SystemClock
from core.session import SessionManager

from .cascade import CascadeResolver
from .coordinator import SchedulingCoordinator
from .data.repositories import (
    AppointmentRepository,
    FacilityDirectory,
    InMemoryAppointmentRepository,
    InMemoryFacilityDirectory,
)
from .domain.calendar_grid import resolve_timezone
from .domain.index import IndexStore
from .domain.policies import AvailabilityPolicy
from .lifecycle import AppointmentLifecycle
from .presentation import CalendarSurfaceComposer
from .session import SelectionState

logger = logging.getLogger(__name__)


def parse_clock_time(value: str) -> time:
    """Parse an 'HH:MM' setting."""
    return datetime.strptime(value, "%H:%M").time()


class SchedulingServer:
    """
    Per-process wiring for the calendar.

    The appointment index is shared by every session; selection state and
    the facility cascade are per session.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        directory: FacilityDirectory,
        clock: Optional[Clock] = None,
        timezone_name: str = "UTC",
        default_start_time: str = "09:00",
        default_duration: int = 30,
        month_event_limit: int = 3,
    ):
        self.repository = repository
        self.directory = directory
        self.clock = clock or SystemClock()
        self.tz = resolve_timezone(timezone_name)
        self.default_start_time = parse_clock_time(default_start_time)
        self.default_duration = default_duration

        self.store = IndexStore(tz=self.tz)
        self.policy = AvailabilityPolicy(self.clock, self.tz)
        self.lifecycle = AppointmentLifecycle(repository, self.store, self.policy)
        self.composer = CalendarSurfaceComposer(self.policy, month_event_limit=month_event_limit)
        self.sessions = SessionManager(SelectionState)
        self._coordinators: Dict[str, SchedulingCoordinator] = {}

    @classmethod
    def from_settings(cls, settings, repository=None, directory=None, clock: Optional[Clock] = None) -> "SchedulingServer":
        """Build a server from Settings, defaulting to in-memory collaborators."""
        if repository is None or directory is None:
            logger.info("No clinic API collaborators supplied, using in-memory store")
        return cls(
            repository=repository or InMemoryAppointmentRepository(tz=resolve_timezone(settings.calendar_timezone)),
            directory=directory or InMemoryFacilityDirectory(),
            clock=clock,
            timezone_name=settings.calendar_timezone,
            default_start_time=settings.default_start_time,
            default_duration=settings.default_duration_minutes,
            month_event_limit=settings.month_cell_event_limit,
        )

    def coordinator_for(self, session_id: str) -> SchedulingCoordinator:
        """Get or create the coordinator for a session."""
        if session_id not in self._coordinators:
            state = self.sessions.get_or_create(session_id)
            self._coordinators[session_id] = SchedulingCoordinator(
                state=state,
                lifecycle=self.lifecycle,
                store=self.store,
                cascade=CascadeResolver(self.directory),
                policy=self.policy,
                directory=self.directory,
                default_start_time=self.default_start_time,
                default_duration=self.default_duration,
            )
        return self._coordinators[session_id]

    def end_session(self, session_id: str):
        self._coordinators.pop(session_id, None)
        self.sessions.clear(session_id)

    async def refresh(self) -> bool:
        return await self.store.refresh(self.repository)
