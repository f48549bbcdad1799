"""
Scheduling Coordinator.

Wires the grid, index, availability policy, cascade resolver and
lifecycle into the calendar's entry points. It is the only layer that
awaits collaborators on behalf of a viewer, and it owns the viewer's
SelectionState.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from core.data import Page
from core.errors import ConflictError, NotFoundError, TransportError, ValidationFailed

from .cascade import CascadeResolver
from .data.repositories import FacilityDirectory, validation_failed_from
from .domain.calendar_grid import CalendarView, days_for_view, shift_anchor, visible_range
from .domain.index import IndexStore
from .domain.lifecycle import PAST_DATE_MESSAGE
from .domain.policies import OCCUPIED, AvailabilityPolicy, SlotCandidate
from .lifecycle import AppointmentLifecycle
from .models import Appointment, AppointmentFilters, AppointmentForm, ConflictCheck, Facility
from .session import DialogMode, SelectionState

logger = logging.getLogger(__name__)

# Fields only the coordinator may change on the form
_FORM_MANAGED_FIELDS = {"appointment_id", "facility_id", "location_id", "end_time"}


class SchedulingCoordinator:
    """
    Entry points for one viewer's calendar.

    Mutations validate locally, call the lifecycle, then refresh the whole
    index and close the dialog. A transport failure leaves the dialog open
    and the index as it was.
    """

    def __init__(
        self,
        state: SelectionState,
        lifecycle: AppointmentLifecycle,
        store: IndexStore,
        cascade: CascadeResolver,
        policy: AvailabilityPolicy,
        directory: FacilityDirectory,
        default_start_time: time = time(9, 0),
        default_duration: int = 30,
    ):
        self.state = state
        self.lifecycle = lifecycle
        self.store = store
        self.cascade = cascade
        self.policy = policy
        self.directory = directory
        self.default_start_time = default_start_time
        self.default_duration = default_duration
        self.tz = store.tz

        if self.state.anchor_date is None:
            self.state.anchor_date = self.policy.today()

    # =========================================================================
    # NAVIGATION
    # =========================================================================

    @property
    def anchor(self) -> date:
        return self.state.anchor_date

    @property
    def view(self) -> CalendarView:
        return self.state.view_type

    def visible_days(self) -> List[date]:
        return days_for_view(self.anchor, self.view)

    def set_view(self, view: Union[CalendarView, str]):
        self.state.view_type = CalendarView(view)

    def set_anchor(self, anchor: date):
        self.state.anchor_date = anchor

    def go_previous(self) -> date:
        self.state.anchor_date = shift_anchor(self.anchor, self.view, -1)
        return self.anchor

    def go_next(self) -> date:
        self.state.anchor_date = shift_anchor(self.anchor, self.view, 1)
        return self.anchor

    def go_today(self) -> date:
        self.state.anchor_date = self.policy.today()
        return self.anchor

    # =========================================================================
    # DIALOG
    # =========================================================================

    def _require_form(self) -> AppointmentForm:
        if self.state.form is None:
            raise ValidationFailed.single("form", "No appointment dialog is open", "no_dialog")
        return self.state.form

    def open_create(self, day: date, at: Optional[time] = None) -> AppointmentForm:
        """
        Open the create dialog for a clicked cell.

        A month-view click passes no time: the day-level rule applies and the
        form starts at the default start time.
        """
        occupants = [] if at is None else self.store.index.for_slot(day, at.hour, at.minute)
        decision = self.policy.evaluate(SlotCandidate(
            day=day,
            hour=None if at is None else at.hour,
            minute=None if at is None else at.minute,
            occupants=occupants,
            visible_range=visible_range(self.anchor, self.view),
        ))
        if decision.is_denied:
            error_class = ConflictError if decision.code == OCCUPIED else ValidationFailed
            raise error_class.single("scheduled_at", decision.reason, decision.code)

        start = at or self.default_start_time
        self.cascade.on_facility_cleared()
        self.state.selected_date = day
        self.state.selected_time = start
        self.state.selected_event = None
        form = AppointmentForm(day=day, start_time=start, duration_minutes=self.default_duration)
        self.state.open_dialog(DialogMode.CREATE, form)
        return form

    async def open_edit(self, appointment: Union[Appointment, int]) -> AppointmentForm:
        """Open the edit dialog, cascading the stored facility so its location resolves."""
        if not isinstance(appointment, Appointment):
            found = self.store.index.get(appointment)
            if found is None:
                raise NotFoundError(f"Appointment {appointment} not found")
            appointment = found

        form = AppointmentForm.from_appointment(appointment, self.tz)
        self.state.selected_event = appointment
        self.state.selected_date = form.day
        self.state.selected_time = form.start_time
        self.state.open_dialog(DialogMode.EDIT, form)

        if appointment.facility_id is not None:
            await self.cascade.on_facility_selected(
                appointment.facility_id,
                keep_location_id=appointment.location_id,
            )
        else:
            self.cascade.on_facility_cleared()
        return form

    def update_form(self, **changes: Any) -> AppointmentForm:
        """Edit plain form fields; facility and location go through their own calls."""
        form = self._require_form()
        managed = _FORM_MANAGED_FIELDS.intersection(changes)
        if managed:
            raise ValidationFailed.single(sorted(managed)[0], "This field cannot be edited directly", "read_only")
        try:
            self.state.form = form.with_changes(**changes)
        except PydanticValidationError as e:
            raise validation_failed_from(e) from e
        return self.state.form

    async def select_facility(self, facility_id: Optional[int]) -> AppointmentForm:
        """Change the facility; the location is cleared and the list re-fetched."""
        form = self._require_form()
        self.state.form = form.with_changes(facility_id=facility_id, location_id=None)
        await self.cascade.on_facility_selected(facility_id)
        return self.state.form

    def select_location(self, location_id: Optional[int]) -> AppointmentForm:
        form = self._require_form()
        self.cascade.select_location(location_id)
        self.state.form = form.with_changes(location_id=location_id)
        return self.state.form

    def close_dialog(self):
        """Reset the selection and the cascade; in-flight mutations still finish."""
        self.state.reset_dialog()
        self.cascade.on_facility_cleared()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def _refresh_after_mutation(self):
        try:
            await self.store.refresh(self.lifecycle.repository)
        except TransportError as e:
            logger.error(f"Refresh after save failed, keeping the current index: {e}")

    def _close_if_unchanged(self, generation: int):
        if self.state.dialog_generation == generation:
            self.close_dialog()

    async def submit(self, form: Optional[AppointmentForm] = None) -> Appointment:
        """
        Save the dialog's appointment (create or edit).

        Raises:
            ValidationFailed: past start, bad fields, or a foreign location
            ConflictError: the slot is already booked
            TransportError: the collaborator failed; the dialog stays open
        """
        form = form or self._require_form()
        generation = self.state.dialog_generation

        if not self.policy.is_future(form.scheduled_at(self.tz)):
            raise ValidationFailed.single("scheduled_at", PAST_DATE_MESSAGE, "past")

        if form.location_id is not None and form.facility_id is not None:
            if self.cascade.facility_id != form.facility_id or not self.cascade.belongs(form.location_id):
                raise ValidationFailed.single(
                    "location_id",
                    "Location does not belong to the selected facility",
                    "invalid_choice",
                )

        if form.is_edit:
            saved = await self.lifecycle.update(form.appointment_id, form.to_patch(self.tz))
        else:
            saved = await self.lifecycle.create(form.to_draft(self.tz))

        await self._refresh_after_mutation()
        self._close_if_unchanged(generation)
        return saved

    async def check_conflict(self, form: Optional[AppointmentForm] = None) -> ConflictCheck:
        """
        Ask the collaborator whether the dialog's time range overlaps a booking.

        Advisory only: the slot check in submit() is what blocks a save.
        """
        form = form or self._require_form()
        start = form.scheduled_at(self.tz)
        return await self.lifecycle.repository.check_conflict(
            start,
            start + timedelta(minutes=form.duration_minutes),
            facility_id=form.facility_id,
            location_id=form.location_id,
            provider_id=form.provider_id,
            appointment_id=form.appointment_id,
        )

    def request_delete(self, appointment_id: Optional[int] = None) -> int:
        """Ask for confirmation before deleting (defaults to the open appointment)."""
        if appointment_id is None and self.state.selected_event is not None:
            appointment_id = self.state.selected_event.id
        if appointment_id is None:
            raise ValidationFailed.single("appointment_id", "No appointment selected", "required")
        self.state.pending_delete_id = appointment_id
        return appointment_id

    def cancel_delete(self):
        self.state.pending_delete_id = None

    async def confirm_delete(self) -> int:
        """Delete the appointment awaiting confirmation."""
        appointment_id = self.state.pending_delete_id
        if appointment_id is None:
            raise ValidationFailed.single("appointment_id", "No deletion awaiting confirmation", "not_requested")
        generation = self.state.dialog_generation

        await self.lifecycle.delete(appointment_id)
        self.state.pending_delete_id = None
        await self._refresh_after_mutation()
        self._close_if_unchanged(generation)
        return appointment_id

    async def reschedule(self, appointment_id: int, scheduled_at: datetime) -> Appointment:
        appointment = await self.lifecycle.reschedule(appointment_id, scheduled_at)
        await self._refresh_after_mutation()
        return appointment

    async def complete(self, appointment_id: int, notes: Optional[str] = None) -> Appointment:
        appointment = await self.lifecycle.complete(appointment_id, notes)
        await self._refresh_after_mutation()
        return appointment

    async def mark_no_show(self, appointment_id: int, notes: Optional[str] = None) -> Appointment:
        appointment = await self.lifecycle.mark_no_show(appointment_id, notes)
        await self._refresh_after_mutation()
        return appointment

    async def cancel(self, appointment_id: int, notes: Optional[str] = None) -> Appointment:
        appointment = await self.lifecycle.cancel(appointment_id, notes)
        await self._refresh_after_mutation()
        return appointment

    async def assign_coach(self, appointment_id: int, coach_id: int) -> Appointment:
        appointment = await self.lifecycle.assign_coach(appointment_id, coach_id)
        await self._refresh_after_mutation()
        return appointment

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def refresh(self) -> bool:
        """Explicit full refresh; transport errors propagate."""
        return await self.store.refresh(self.lifecycle.repository)

    async def load_facilities(self) -> List[Facility]:
        """Active facilities for the facility picker."""
        return await self.directory.list_facilities(status="active")

    async def list_upcoming(self, **filters: Any) -> Page[Any]:
        return await self.lifecycle.repository.list(AppointmentFilters.upcoming(self.policy.today(), **filters))

    async def list_past(self, **filters: Any) -> Page[Any]:
        return await self.lifecycle.repository.list(AppointmentFilters.past(self.policy.today(), **filters))

    def snapshot(self) -> Dict[str, Any]:
        data = self.state.to_dict()
        data["cascade"] = self.cascade.to_dict()
        return data
