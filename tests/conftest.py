"""Shared fixtures for the calendar test suite.

The fixed "now" is Sunday 2026-10-18 14:07 UTC unless a test moves it.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from core.clock import FixedClock
from use_cases.scheduling.data.repositories import (
    InMemoryAppointmentRepository,
    InMemoryFacilityDirectory,
)
from use_cases.scheduling.models import Appointment, Facility, Location
from use_cases.scheduling.server import SchedulingServer

NOW = datetime(2026, 10, 18, 14, 7, tzinfo=timezone.utc)


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def make_appointment():
    """Factory for Appointment models with sensible defaults."""
    counter = {"next": 100}

    def _make(scheduled_at: datetime, **overrides) -> Appointment:
        counter["next"] += 1
        data = {
            "id": counter["next"],
            "patient_id": 1,
            "scheduled_at": scheduled_at,
            "duration_minutes": 30,
            "type": "consultation",
            "status": "scheduled",
        }
        data.update(overrides)
        return Appointment.model_validate(data)

    return _make


@pytest.fixture
def facilities():
    return [
        Facility(
            id=1,
            name="Downtown Clinic",
            status="active",
            locations=[Location(id=11, name="Room A"), Location(id=12, name="Room B")],
        ),
        Facility(id=2, name="Uptown Clinic", status="active", locations=[Location(id=21, name="Suite 1")]),
        Facility(id=3, name="Closed Annex", status="inactive", is_inactive=True),
    ]


@pytest.fixture
def directory(facilities):
    return InMemoryFacilityDirectory(facilities)


@pytest.fixture
def existing(make_appointment):
    """Two appointments on Tuesday 2026-10-20 and one completed in the past."""
    return [
        make_appointment(utc(2026, 10, 20, 10, 0), id=1, facility_id=1, location_id=11),
        make_appointment(utc(2026, 10, 20, 9, 0), id=2, patient_id=2, type="therapy"),
        make_appointment(utc(2026, 10, 15, 9, 0), id=3, status="completed"),
    ]


@pytest.fixture
def repository(existing):
    return InMemoryAppointmentRepository(existing)


@pytest_asyncio.fixture
async def server(repository, directory, clock):
    scheduling = SchedulingServer(
        repository=repository,
        directory=directory,
        clock=clock,
        timezone_name="UTC",
    )
    await scheduling.refresh()
    return scheduling


@pytest_asyncio.fixture
async def coordinator(server):
    return server.coordinator_for("test-session")


@pytest.fixture
def tomorrow_at():
    """Aware UTC datetime tomorrow (relative to NOW) at the given time."""

    def _at(hour: int, minute: int = 0) -> datetime:
        return (NOW + timedelta(days=1)).replace(hour=hour, minute=minute)

    return _at
