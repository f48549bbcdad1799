"""Tests for the scheduling coordinator's dialog, mutation and navigation flows."""

import asyncio
from datetime import date, time
from unittest.mock import AsyncMock

import pytest

from core.errors import ConflictError, NotFoundError, TransportError, ValidationFailed
from use_cases.scheduling.domain.calendar_grid import CalendarView
from use_cases.scheduling.domain.lifecycle import PAST_DATE_MESSAGE
from use_cases.scheduling.models import AppointmentStatus
from use_cases.scheduling.session import DialogMode

from tests.conftest import utc

TODAY = date(2026, 10, 18)
TOMORROW = date(2026, 10, 19)


class TestOpenCreate:
    @pytest.mark.asyncio
    async def test_week_cell_prefills_form(self, coordinator):
        coordinator.set_view("week")

        form = coordinator.open_create(TOMORROW, time(10, 30))

        assert form.day == TOMORROW
        assert form.start_time == time(10, 30)
        assert form.duration_minutes == 30
        assert form.end_time == time(11, 0)
        assert coordinator.state.dialog_mode == DialogMode.CREATE
        assert coordinator.state.selected_date == TOMORROW

    @pytest.mark.asyncio
    async def test_month_click_uses_default_start(self, coordinator):
        form = coordinator.open_create(TOMORROW)

        assert form.start_time == time(9, 0)

    @pytest.mark.asyncio
    async def test_elapsed_slot_today_is_rejected(self, coordinator):
        # Scenario B: now is 14:07
        coordinator.set_view("day")

        with pytest.raises(ValidationFailed) as excinfo:
            coordinator.open_create(TODAY, time(14, 0))

        assert excinfo.value.errors[0].code == "elapsed_slot"
        assert coordinator.state.dialog_open is False
        assert coordinator.open_create(TODAY, time(14, 15)).start_time == time(14, 15)

    @pytest.mark.asyncio
    async def test_past_day_is_rejected(self, coordinator):
        with pytest.raises(ValidationFailed):
            coordinator.open_create(date(2026, 10, 17))

    @pytest.mark.asyncio
    async def test_occupied_cell_is_rejected(self, coordinator):
        coordinator.set_view("week")

        with pytest.raises(ConflictError):
            coordinator.open_create(date(2026, 10, 20), time(10, 0))

    @pytest.mark.asyncio
    async def test_end_time_follows_duration(self, coordinator):
        coordinator.open_create(TOMORROW, time(23, 30))

        form = coordinator.update_form(duration_minutes=90)

        assert form.end_time == time(1, 0)

    @pytest.mark.asyncio
    async def test_end_time_is_not_editable(self, coordinator):
        coordinator.open_create(TOMORROW, time(10, 0))

        with pytest.raises(ValidationFailed):
            coordinator.update_form(end_time="12:00")


class TestSubmitCreate:
    @pytest.mark.asyncio
    async def test_create_in_empty_slot(self, coordinator, server):
        # Scenario A
        coordinator.set_view("week")
        coordinator.open_create(TOMORROW, time(10, 30))
        coordinator.update_form(patient_id=9, type="coaching", fee="45.50")

        saved = await coordinator.submit()

        assert saved.status == AppointmentStatus.SCHEDULED
        assert str(saved.fee) == "45.50"
        assert coordinator.state.dialog_open is False
        assert coordinator.state.form is None
        assert server.store.index.for_slot(TOMORROW, 10, 30)[0].id == saved.id
        assert saved in server.store.index.for_date(TOMORROW)

    @pytest.mark.asyncio
    async def test_form_that_became_past_is_rejected(self, coordinator, clock):
        coordinator.open_create(TODAY, time(14, 15))
        coordinator.update_form(patient_id=9, type="coaching")
        clock.advance(minutes=10)

        with pytest.raises(ValidationFailed) as excinfo:
            await coordinator.submit()

        assert excinfo.value.message == PAST_DATE_MESSAGE
        assert coordinator.state.dialog_open is True

    @pytest.mark.asyncio
    async def test_double_booking_rejected_without_repository_call(self, coordinator, server):
        # Scenario D: the slot filled up after the dialog opened
        coordinator.open_create(date(2026, 10, 21), time(11, 0))
        coordinator.update_form(patient_id=9, type="coaching")
        await server.lifecycle.create(
            coordinator.state.form.with_changes(patient_id=4).to_draft(server.tz)
        )
        server.repository.create = AsyncMock()

        with pytest.raises(ConflictError):
            await coordinator.submit()

        server.repository.create.assert_not_awaited()
        assert coordinator.state.dialog_open is True

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_dialog_and_index(self, coordinator, server):
        coordinator.open_create(TOMORROW, time(10, 30))
        coordinator.update_form(patient_id=9, type="coaching")
        server.repository.create = AsyncMock(side_effect=TransportError("Clinic API returned 502"))
        before = list(server.store.index)

        with pytest.raises(TransportError):
            await coordinator.submit()

        assert coordinator.state.dialog_open is True
        assert list(server.store.index) == before

    @pytest.mark.asyncio
    async def test_refresh_failure_after_save_still_closes(self, coordinator, server):
        coordinator.open_create(TOMORROW, time(10, 30))
        coordinator.update_form(patient_id=9, type="coaching")
        server.repository.list = AsyncMock(side_effect=TransportError("timeout"))

        saved = await coordinator.submit()

        assert coordinator.state.dialog_open is False
        assert server.store.index.get(saved.id) is not None


class TestFacilityCascade:
    @pytest.mark.asyncio
    async def test_selecting_facility_clears_location(self, coordinator):
        coordinator.open_create(TOMORROW, time(10, 30))
        await coordinator.select_facility(1)
        coordinator.select_location(11)

        form = await coordinator.select_facility(2)

        assert form.facility_id == 2
        assert form.location_id is None
        assert [loc.id for loc in coordinator.cascade.locations] == [21]

    @pytest.mark.asyncio
    async def test_clearing_facility(self, coordinator):
        coordinator.open_create(TOMORROW, time(10, 30))
        await coordinator.select_facility(1)

        form = await coordinator.select_facility(None)

        assert form.facility_id is None
        assert coordinator.cascade.locations == []

    @pytest.mark.asyncio
    async def test_submit_with_location_of_another_facility(self, coordinator):
        coordinator.open_create(TOMORROW, time(10, 30))
        coordinator.update_form(patient_id=9, type="coaching")
        await coordinator.select_facility(1)
        form = coordinator.state.form.with_changes(location_id=21)

        with pytest.raises(ValidationFailed) as excinfo:
            await coordinator.submit(form)

        assert excinfo.value.fields == ["location_id"]

    @pytest.mark.asyncio
    async def test_submit_with_facility_and_location(self, coordinator):
        coordinator.open_create(TOMORROW, time(10, 30))
        coordinator.update_form(patient_id=9, type="therapy")
        await coordinator.select_facility(1)
        coordinator.select_location(12)

        saved = await coordinator.submit()

        assert (saved.facility_id, saved.location_id) == (1, 12)


class TestEdit:
    @pytest.mark.asyncio
    async def test_edit_cascades_stored_facility(self, coordinator):
        form = await coordinator.open_edit(1)

        assert form.appointment_id == 1
        assert form.day == date(2026, 10, 20)
        assert form.start_time == time(10, 0)
        assert form.location_id == 11
        assert coordinator.cascade.facility_id == 1
        assert coordinator.cascade.location_id == 11
        assert coordinator.state.dialog_mode == DialogMode.EDIT

    @pytest.mark.asyncio
    async def test_edit_saves_through_update(self, coordinator, server):
        await coordinator.open_edit(1)
        coordinator.update_form(notes="Bring lab results", duration_minutes=45)

        saved = await coordinator.submit()

        assert saved.id == 1
        assert saved.notes == "Bring lab results"
        assert server.store.index.get(1).duration_minutes == 45
        assert coordinator.state.dialog_open is False

    @pytest.mark.asyncio
    async def test_edit_unknown_appointment(self, coordinator):
        with pytest.raises(NotFoundError):
            await coordinator.open_edit(404)


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, coordinator, server):
        await coordinator.open_edit(2)

        assert coordinator.request_delete() == 2
        assert server.store.index.get(2) is not None

        await coordinator.confirm_delete()

        assert server.store.index.get(2) is None
        assert coordinator.state.dialog_open is False

    @pytest.mark.asyncio
    async def test_confirm_without_request(self, coordinator):
        with pytest.raises(ValidationFailed):
            await coordinator.confirm_delete()

    @pytest.mark.asyncio
    async def test_closing_dialog_discards_pending_delete(self, coordinator, server):
        await coordinator.open_edit(2)
        coordinator.request_delete()

        coordinator.close_dialog()

        assert coordinator.state.pending_delete_id is None
        with pytest.raises(ValidationFailed):
            await coordinator.confirm_delete()
        assert server.store.index.get(2) is not None

    @pytest.mark.asyncio
    async def test_cancel_delete(self, coordinator):
        await coordinator.open_edit(2)
        coordinator.request_delete()

        coordinator.cancel_delete()

        assert coordinator.state.pending_delete_id is None
        assert coordinator.state.dialog_open is True


class TestCloseDialog:
    @pytest.mark.asyncio
    async def test_close_resets_selection_and_cascade(self, coordinator):
        coordinator.set_view("week")
        coordinator.open_create(TOMORROW, time(10, 30))
        await coordinator.select_facility(1)

        coordinator.close_dialog()

        assert coordinator.state.selected_date is None
        assert coordinator.state.form is None
        assert coordinator.cascade.facility_id is None
        assert coordinator.view == CalendarView.WEEK

    @pytest.mark.asyncio
    async def test_in_flight_save_finishes_after_close(self, coordinator, server):
        coordinator.open_create(TOMORROW, time(10, 30))
        coordinator.update_form(patient_id=9, type="coaching")
        started = asyncio.Event()
        gate = asyncio.Event()
        real_create = server.repository.create

        async def slow_create(draft):
            started.set()
            await gate.wait()
            return await real_create(draft)

        server.repository.create = slow_create
        task = asyncio.create_task(coordinator.submit())
        await started.wait()

        coordinator.close_dialog()
        coordinator.open_create(TOMORROW, time(15, 0))
        gate.set()
        saved = await task

        assert server.store.index.get(saved.id) is not None
        assert coordinator.state.dialog_open is True
        assert coordinator.state.form.start_time == time(15, 0)


class TestNavigation:
    @pytest.mark.asyncio
    async def test_anchor_defaults_to_today(self, coordinator):
        assert coordinator.anchor == TODAY

    @pytest.mark.asyncio
    async def test_previous_next_today(self, coordinator):
        coordinator.set_view(CalendarView.MONTH)
        assert coordinator.go_next() == date(2026, 11, 18)

        coordinator.set_view(CalendarView.WEEK)
        assert coordinator.go_previous() == date(2026, 11, 11)

        coordinator.set_view(CalendarView.DAY)
        assert coordinator.go_next() == date(2026, 11, 12)

        assert coordinator.go_today() == TODAY

    @pytest.mark.asyncio
    async def test_visible_days(self, coordinator):
        coordinator.set_view("week")

        assert coordinator.visible_days()[0] == TODAY
        assert len(coordinator.visible_days()) == 7


class TestQueries:
    @pytest.mark.asyncio
    async def test_active_facilities_only(self, coordinator):
        facilities = await coordinator.load_facilities()

        assert [f.id for f in facilities] == [1, 2]

    @pytest.mark.asyncio
    async def test_upcoming_and_past(self, coordinator):
        upcoming = await coordinator.list_upcoming()
        past = await coordinator.list_past()

        assert [a.id for a in upcoming.items] == [2, 1]
        assert [a.id for a in past.items] == [3]

    @pytest.mark.asyncio
    async def test_lifecycle_shortcuts_refresh_index(self, coordinator, server):
        await coordinator.complete(1, notes="done")
        await coordinator.cancel(2)

        assert server.store.index.get(1).status == AppointmentStatus.COMPLETED
        assert server.store.index.get(2).status == AppointmentStatus.CANCELED

    @pytest.mark.asyncio
    async def test_reschedule_shortcut(self, coordinator, server):
        await coordinator.reschedule(2, utc(2026, 10, 22, 13, 45))

        assert server.store.index.for_slot(date(2026, 10, 22), 13, 45)[0].id == 2


class TestConflictCheck:
    @pytest.mark.asyncio
    async def test_overlapping_range_is_reported(self, coordinator):
        coordinator.open_create(date(2026, 10, 20))
        coordinator.update_form(start_time=time(9, 45))

        result = await coordinator.check_conflict()

        assert result.has_conflict is True
        assert [a.id for a in result.conflicting_appointments] == [1]

    @pytest.mark.asyncio
    async def test_free_range(self, coordinator):
        coordinator.open_create(date(2026, 10, 20))
        coordinator.update_form(start_time=time(11, 0))

        result = await coordinator.check_conflict()

        assert result.has_conflict is False
        assert result.conflicting_appointments == []

    @pytest.mark.asyncio
    async def test_edited_appointment_does_not_conflict_with_itself(self, coordinator):
        await coordinator.open_edit(1)

        result = await coordinator.check_conflict()

        assert result.has_conflict is False
