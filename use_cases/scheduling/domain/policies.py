"""
Scheduling Domain Policies.

Pure business rules deciding whether a calendar cell may start a new
appointment. "Now" is read from the injected clock on every evaluation.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple

import pytz

from core.clock import Clock
from core.domain import PolicyDecision, PolicyEngine, PolicyResult

from .calendar_grid import local_instant, to_local


# =============================================================================
# REASON CODES
# =============================================================================

AVAILABLE = "available"
OCCUPIED = "occupied"
OUTSIDE_RANGE = "outside_range"
PAST_DAY = "past_day"
ELAPSED_SLOT = "elapsed_slot"


@dataclass
class SlotCandidate:
    """
    A cell the viewer clicked.

    hour/minute are None for a month-view day cell, where only the
    day-level rule applies.
    """
    day: date
    hour: Optional[int] = None
    minute: Optional[int] = None
    occupants: List = field(default_factory=list)
    visible_range: Optional[Tuple[date, date]] = None

    @property
    def is_day_only(self) -> bool:
        return self.hour is None


class AvailabilityPolicy(PolicyEngine):
    """
    Rules for when a cell is selectable for a new appointment.

    Evaluates, in order:
    - Occupancy (any appointment already starting in the slot)
    - Visible range (when the caller supplies one)
    - Past days
    - Elapsed slots on the current day
    """

    def __init__(self, clock: Clock, tz: Optional[pytz.BaseTzInfo] = None):
        self.clock = clock
        self.tz = tz or pytz.UTC

    def current_minute(self) -> datetime:
        """Local "now" floored to the minute."""
        return to_local(self.clock.now(), self.tz).replace(second=0, microsecond=0)

    def today(self) -> date:
        return to_local(self.clock.now(), self.tz).date()

    def evaluate(self, context: SlotCandidate) -> PolicyDecision:
        """
        Evaluate if a new appointment can start at the candidate cell.
        """
        if context.occupants:
            return PolicyDecision(
                result=PolicyResult.DENIED,
                reason="This time slot already has an appointment",
                code=OCCUPIED,
                metadata={"occupants": [getattr(a, "id", None) for a in context.occupants]},
            )

        if context.visible_range is not None:
            first, last = context.visible_range
            if not (first <= context.day <= last):
                return PolicyDecision(
                    result=PolicyResult.DENIED,
                    reason="Date is outside the visible calendar range",
                    code=OUTSIDE_RANGE,
                )

        now = self.current_minute()
        if context.day < now.date():
            return PolicyDecision(
                result=PolicyResult.DENIED,
                reason="Cannot schedule appointments on past dates",
                code=PAST_DAY,
            )

        if not context.is_day_only and context.day == now.date():
            start = local_instant(context.day, context.hour, context.minute or 0, self.tz)
            if start <= now:
                return PolicyDecision(
                    result=PolicyResult.DENIED,
                    reason="This time has already passed",
                    code=ELAPSED_SLOT,
                )

        return PolicyDecision(
            result=PolicyResult.APPROVED,
            reason="Time slot is available",
            code=AVAILABLE,
        )

    def is_selectable(
        self,
        day: date,
        hour: int,
        minute: int,
        occupants: Optional[List] = None,
        visible_range: Optional[Tuple[date, date]] = None,
    ) -> bool:
        """Week/day view rule for a single quarter-hour cell."""
        candidate = SlotCandidate(
            day=day,
            hour=hour,
            minute=minute,
            occupants=list(occupants or []),
            visible_range=visible_range,
        )
        return self.evaluate(candidate).is_approved

    def is_day_selectable(self, day: date, visible_range: Optional[Tuple[date, date]] = None) -> bool:
        """Month view rule: only the day-level check applies."""
        return self.evaluate(SlotCandidate(day=day, visible_range=visible_range)).is_approved

    def is_future(self, instant: datetime) -> bool:
        """True when instant is strictly after the current moment."""
        return instant > self.clock.now()
