"""
Appointment Lifecycle Service.

Applies the lifecycle rules, then calls the appointment repository.
Nothing reaches the collaborator until validation, the future-time check
and the slot-occupancy check have passed, and the index only changes
after the collaborator confirms.
"""

import logging
from datetime import datetime
from typing import Optional

from core.errors import ConflictError, NotFoundError, ValidationFailed

from .data.repositories import AppointmentRepository
from .domain.calendar_grid import to_local
from .domain.index import IndexStore
from .domain.lifecycle import PAST_DATE_MESSAGE, AppointmentValidator, can_transition
from .domain.policies import OCCUPIED, AvailabilityPolicy, SlotCandidate
from .models import (
    Appointment,
    AppointmentDraft,
    AppointmentPatch,
    AppointmentStatistics,
    AppointmentStatus,
)

logger = logging.getLogger(__name__)


class AppointmentLifecycle:
    """
    Create, update and move appointments through their states.

    Dedicated transitions (complete, no-show, cancel, reschedule) only
    start from scheduled. The generic update path may set any status.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        store: IndexStore,
        policy: AvailabilityPolicy,
    ):
        self.repository = repository
        self.store = store
        self.policy = policy
        self.validator = AppointmentValidator()

    # =========================================================================
    # CHECKS
    # =========================================================================

    def _ensure_future(self, scheduled_at: datetime):
        if not self.policy.is_future(scheduled_at):
            raise ValidationFailed.single("scheduled_at", PAST_DATE_MESSAGE, "past")

    def _ensure_slot_free(self, scheduled_at: datetime, exclude_id: Optional[int] = None):
        local = to_local(scheduled_at, self.store.tz)
        occupants = [
            a for a in self.store.index.for_slot(local.date(), local.hour, local.minute)
            if a.id != exclude_id
        ]
        decision = self.policy.evaluate(SlotCandidate(
            day=local.date(),
            hour=local.hour,
            minute=local.minute,
            occupants=occupants,
        ))
        if decision.code == OCCUPIED:
            raise ConflictError.single("scheduled_at", "This time slot is already booked", OCCUPIED)

    async def _current(self, appointment_id: int) -> Appointment:
        appointment = self.store.index.get(appointment_id)
        if appointment is None:
            appointment = await self.repository.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def _ensure_transition(self, appointment: Appointment, target: AppointmentStatus):
        if not can_transition(appointment.status, target):
            raise ValidationFailed.single(
                "status",
                f"Cannot mark a {appointment.status.value} appointment as {target.value}",
                "invalid_transition",
            )

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def create(self, draft: AppointmentDraft) -> Appointment:
        """Validate and create a new scheduled appointment."""
        errors = self.validator.validate(draft.model_dump())
        if errors:
            raise ValidationFailed(errors)
        self._ensure_future(draft.scheduled_at)
        self._ensure_slot_free(draft.scheduled_at)

        draft = draft.model_copy(update={"status": AppointmentStatus.SCHEDULED})
        appointment = await self.repository.create(draft)
        self.store.upsert(appointment)
        logger.info(f"Appointment {appointment.id} created for patient {appointment.patient_id} at {appointment.scheduled_at.isoformat()}")
        return appointment

    async def update(self, appointment_id: int, patch: AppointmentPatch) -> Appointment:
        """Generic update; re-checks time and occupancy only when the start moves."""
        current = await self._current(appointment_id)
        changes = patch.changes()

        merged = current.model_dump()
        merged.update(changes)
        errors = self.validator.validate(merged)
        if errors:
            raise ValidationFailed(errors)

        new_start = changes.get("scheduled_at")
        if new_start is not None and new_start != current.scheduled_at:
            self._ensure_future(new_start)
            self._ensure_slot_free(new_start, exclude_id=appointment_id)

        appointment = await self.repository.update(appointment_id, patch)
        self.store.upsert(appointment)
        logger.info(f"Appointment {appointment_id} updated ({', '.join(sorted(changes)) or 'no fields'})")
        return appointment

    async def reschedule(self, appointment_id: int, scheduled_at: datetime) -> Appointment:
        """Move a scheduled appointment; it stays scheduled."""
        current = await self._current(appointment_id)
        if current.status != AppointmentStatus.SCHEDULED:
            raise ValidationFailed.single(
                "status",
                f"Only scheduled appointments can be rescheduled (this one is {current.status.value})",
                "invalid_transition",
            )
        self._ensure_future(scheduled_at)
        self._ensure_slot_free(scheduled_at, exclude_id=appointment_id)

        appointment = await self.repository.reschedule(appointment_id, scheduled_at)
        self.store.upsert(appointment)
        logger.info(f"Appointment {appointment_id} rescheduled to {scheduled_at.isoformat()}")
        return appointment

    async def complete(self, appointment_id: int, notes: Optional[str] = None) -> Appointment:
        current = await self._current(appointment_id)
        self._ensure_transition(current, AppointmentStatus.COMPLETED)
        appointment = await self.repository.complete(appointment_id, notes)
        self.store.upsert(appointment)
        logger.info(f"Appointment {appointment_id} completed")
        return appointment

    async def mark_no_show(self, appointment_id: int, notes: Optional[str] = None) -> Appointment:
        current = await self._current(appointment_id)
        self._ensure_transition(current, AppointmentStatus.NO_SHOW)
        appointment = await self.repository.mark_no_show(appointment_id, notes)
        self.store.upsert(appointment)
        logger.info(f"Appointment {appointment_id} marked as no-show")
        return appointment

    async def cancel(self, appointment_id: int, notes: Optional[str] = None) -> Appointment:
        current = await self._current(appointment_id)
        self._ensure_transition(current, AppointmentStatus.CANCELED)
        changes = {"status": AppointmentStatus.CANCELED}
        if notes is not None:
            changes["notes"] = notes
        appointment = await self.repository.update(appointment_id, AppointmentPatch(**changes))
        self.store.upsert(appointment)
        logger.info(f"Appointment {appointment_id} canceled")
        return appointment

    async def assign_coach(self, appointment_id: int, coach_id: int) -> Appointment:
        await self._current(appointment_id)
        appointment = await self.repository.assign_coach(appointment_id, coach_id)
        self.store.upsert(appointment)
        logger.info(f"Coach {coach_id} assigned to appointment {appointment_id}")
        return appointment

    async def delete(self, appointment_id: int):
        """Delete via the collaborator; the index drops the record only afterwards."""
        await self.repository.delete(appointment_id)
        self.store.discard(appointment_id)
        logger.info(f"Appointment {appointment_id} deleted")

    async def statistics(self) -> AppointmentStatistics:
        return await self.repository.statistics()
