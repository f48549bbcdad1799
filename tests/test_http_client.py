"""Tests for the clinic REST adapters against a mocked transport."""

import json
from datetime import date

import httpx
import pytest
import pytest_asyncio

from core.errors import ConflictError, NotFoundError, TransportError, ValidationFailed
from use_cases.scheduling.data.http_client import HttpAppointmentRepository, HttpFacilityDirectory
from use_cases.scheduling.models import AppointmentDraft, AppointmentFilters, AppointmentPatch

from tests.conftest import utc

BASE_URL = "https://clinic.test/api"

APPOINTMENT = {
    "id": 1,
    "patient_id": 5,
    "scheduled_at": "2026-10-20T10:00:00Z",
    "duration_minutes": 30,
    "type": "consultation",
    "status": "scheduled",
    "fee": "120.00",
    "patient": {"first_name": "Ada", "last_name": "Lovelace"},
}


class Recorder:
    """Mock transport handler that records requests and replays a response."""

    def __init__(self, status_code=200, body=None, error=None):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.body is None:
            return httpx.Response(self.status_code)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self):
        return json.loads(self.last.content)


@pytest_asyncio.fixture
async def clients():
    opened = []

    def _make(handler):
        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        opened.append(client)
        return client

    yield _make
    for client in opened:
        await client.aclose()


class TestAppointmentList:
    @pytest.mark.asyncio
    async def test_full_collection_request(self, clients):
        handler = Recorder(body={"appointments": [APPOINTMENT]})
        repository = HttpAppointmentRepository(clients(handler))

        page = await repository.list(AppointmentFilters.everything())

        assert handler.last.url.path == "/api/appointments"
        assert handler.last.url.params["per_page"] == "all"
        assert page.items == [APPOINTMENT]
        assert page.pagination is None

    @pytest.mark.asyncio
    async def test_filters_and_pagination(self, clients):
        handler = Recorder(body={
            "data": [APPOINTMENT],
            "pagination": {"current_page": 1, "last_page": 3, "per_page": 10, "total": 25},
        })
        repository = HttpAppointmentRepository(clients(handler))

        page = await repository.list(AppointmentFilters.past(date(2026, 10, 18), per_page=10))

        params = handler.last.url.params
        assert params["date_to"] == "2026-10-18"
        assert params["status"] == "completed,no_show,canceled"
        assert page.has_more is True
        assert page.pagination.total == 25

    @pytest.mark.asyncio
    async def test_bare_list_body(self, clients):
        repository = HttpAppointmentRepository(clients(Recorder(body=[APPOINTMENT])))

        page = await repository.list()

        assert len(page.items) == 1


class TestAppointmentWrites:
    @pytest.mark.asyncio
    async def test_create_sends_fee_as_number(self, clients):
        handler = Recorder(status_code=201, body={"appointment": APPOINTMENT})
        repository = HttpAppointmentRepository(clients(handler))
        draft = AppointmentDraft(
            patient_id=5,
            scheduled_at=utc(2026, 10, 20, 10, 0),
            type="consultation",
            fee="120.00",
        )

        appointment = await repository.create(draft)

        sent = handler.last_json
        assert handler.last.method == "POST"
        assert sent["fee"] == 120.0
        assert sent["status"] == "scheduled"
        assert sent["duration_minutes"] == 30
        assert "notes" not in sent
        assert appointment.patient_name == "Ada Lovelace"
        assert str(appointment.fee) == "120.00"

    @pytest.mark.asyncio
    async def test_update_sends_only_changed_fields(self, clients):
        handler = Recorder(body=APPOINTMENT)
        repository = HttpAppointmentRepository(clients(handler))

        await repository.update(1, AppointmentPatch(notes="Bring lab results"))

        assert handler.last.method == "PUT"
        assert handler.last.url.path == "/api/appointments/1"
        assert handler.last_json == {"notes": "Bring lab results"}

    @pytest.mark.asyncio
    async def test_lifecycle_endpoints(self, clients):
        handler = Recorder(body=APPOINTMENT)
        repository = HttpAppointmentRepository(clients(handler))

        await repository.complete(1, notes="done")
        assert handler.last.url.path == "/api/appointments/1/complete"
        assert handler.last_json == {"notes": "done"}

        await repository.mark_no_show(1)
        assert handler.last.url.path == "/api/appointments/1/no-show"

        await repository.reschedule(1, utc(2026, 10, 21, 9, 0))
        assert handler.last.method == "PATCH"
        assert handler.last_json == {"scheduled_at": "2026-10-21T09:00:00+00:00"}

        await repository.assign_coach(1, 40)
        assert handler.last.url.path == "/api/appointments/1/assign-coach"
        assert handler.last_json == {"coach_id": 40}

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self, clients):
        handler = Recorder(status_code=204)
        repository = HttpAppointmentRepository(clients(handler))

        assert await repository.delete(1) is None
        assert handler.last.method == "DELETE"


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_validation_errors_carry_fields(self, clients):
        body = {"message": "The given data was invalid.", "errors": {"duration_minutes": ["Minimum 15 minutes"]}}
        repository = HttpAppointmentRepository(clients(Recorder(status_code=422, body=body)))

        with pytest.raises(ValidationFailed) as excinfo:
            await repository.update(1, AppointmentPatch(duration_minutes=5))

        assert excinfo.value.fields == ["duration_minutes"]
        assert excinfo.value.errors[0].message == "Minimum 15 minutes"

    @pytest.mark.asyncio
    async def test_conflict(self, clients):
        body = {"message": "Time slot is already booked"}
        repository = HttpAppointmentRepository(clients(Recorder(status_code=409, body=body)))

        with pytest.raises(ConflictError) as excinfo:
            await repository.reschedule(1, utc(2026, 10, 21, 9, 0))

        assert excinfo.value.message == "Time slot is already booked"

    @pytest.mark.asyncio
    async def test_server_error(self, clients):
        repository = HttpAppointmentRepository(clients(Recorder(status_code=500, body={"message": "boom"})))

        with pytest.raises(TransportError):
            await repository.complete(1)

    @pytest.mark.asyncio
    async def test_connection_error(self, clients):
        repository = HttpAppointmentRepository(clients(Recorder(error=httpx.ConnectError("refused"))))

        with pytest.raises(TransportError):
            await repository.list()

    @pytest.mark.asyncio
    async def test_get_unknown_returns_none(self, clients):
        repository = HttpAppointmentRepository(clients(Recorder(status_code=404, body={"message": "Not found"})))

        assert await repository.get(404) is None

    @pytest.mark.asyncio
    async def test_not_found_on_mutation(self, clients):
        repository = HttpAppointmentRepository(clients(Recorder(status_code=404)))

        with pytest.raises(NotFoundError):
            await repository.delete(404)

    @pytest.mark.asyncio
    async def test_malformed_appointment_body(self, clients):
        repository = HttpAppointmentRepository(clients(Recorder(body={"appointment": {"id": "x"}})))

        with pytest.raises(TransportError):
            await repository.complete(1)


class TestConflictAndStatistics:
    @pytest.mark.asyncio
    async def test_check_conflict(self, clients):
        handler = Recorder(body={"hasConflict": True, "conflictingAppointments": [APPOINTMENT]})
        repository = HttpAppointmentRepository(clients(handler))

        result = await repository.check_conflict(
            utc(2026, 10, 20, 10, 0),
            utc(2026, 10, 20, 10, 30),
            location_id=11,
        )

        assert result.has_conflict is True
        assert [a.id for a in result.conflicting_appointments] == [1]
        assert handler.last_json["location_id"] == 11
        assert "facility_id" not in handler.last_json

    @pytest.mark.asyncio
    async def test_malformed_conflicting_appointment(self, clients):
        handler = Recorder(body={"hasConflict": True, "conflictingAppointments": [{"id": 1}]})
        repository = HttpAppointmentRepository(clients(handler))

        with pytest.raises(TransportError):
            await repository.check_conflict(utc(2026, 10, 20, 10, 0), utc(2026, 10, 20, 10, 30))

    @pytest.mark.asyncio
    async def test_statistics(self, clients):
        body = {"total": 4, "scheduled": 3, "by_type": {"therapy": 4}}
        repository = HttpAppointmentRepository(clients(Recorder(body=body)))

        statistics = await repository.statistics()

        assert statistics.total == 4
        assert statistics.by_type == {"therapy": 4}


class TestFacilityDirectory:
    @pytest.mark.asyncio
    async def test_active_facilities(self, clients):
        handler = Recorder(body={"facilities": [{"id": 1, "name": "Downtown Clinic", "status": "active"}]})
        directory = HttpFacilityDirectory(clients(handler))

        facilities = await directory.list_facilities()

        assert handler.last.url.params["status"] == "active"
        assert [f.name for f in facilities] == ["Downtown Clinic"]

    @pytest.mark.asyncio
    async def test_locations_for_facility(self, clients):
        handler = Recorder(body={"locations": [{"id": 11, "name": "Room A", "city": "Austin"}]})
        directory = HttpFacilityDirectory(clients(handler))

        locations = await directory.list_locations_for_facility(1)

        assert handler.last.url.path == "/api/facilities/1/locations"
        assert locations[0].city == "Austin"

    @pytest.mark.asyncio
    async def test_malformed_location_is_a_transport_error(self, clients):
        directory = HttpFacilityDirectory(clients(Recorder(body={"locations": [{"name": "no id"}]})))

        with pytest.raises(TransportError):
            await directory.list_locations_for_facility(7)

    @pytest.mark.asyncio
    async def test_malformed_facility_is_a_transport_error(self, clients):
        directory = HttpFacilityDirectory(clients(Recorder(body={"facilities": [{"id": "first"}]})))

        with pytest.raises(TransportError):
            await directory.list_facilities()

    @pytest.mark.asyncio
    async def test_location_failure(self, clients):
        directory = HttpFacilityDirectory(clients(Recorder(status_code=503)))

        with pytest.raises(TransportError):
            await directory.list_locations_for_facility(1)
