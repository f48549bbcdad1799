"""
Calendar Surface Composer.

Turns grid, index and availability output into JSON-ready payloads for
the month, week and day views. Selectability always comes from the
AvailabilityPolicy; this module only arranges data.
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional

from core.presentation import TextFormatter, ViewComposer, ViewTheme

from ..domain.calendar_grid import (
    CalendarView,
    days_for_month,
    days_for_week,
    time_slots,
    title_for_view,
    to_local,
    visible_range,
)
from ..domain.index import AppointmentIndex
from ..domain.policies import AvailabilityPolicy
from ..models import Appointment, AppointmentStatus


class CalendarSurfaceComposer(ViewComposer):
    """
    Composes calendar payloads.

    Example:
        composer = CalendarSurfaceComposer(policy)
        payload = composer.compose("week", date(2026, 10, 18), store.index)
    """

    def __init__(
        self,
        policy: AvailabilityPolicy,
        theme: Optional[ViewTheme] = None,
        month_event_limit: int = 3,
    ):
        super().__init__(theme)
        self.policy = policy
        self.month_event_limit = month_event_limit

    def get_view_builders(self) -> Dict[str, Callable]:
        return {
            CalendarView.MONTH.value: self.compose_month,
            CalendarView.WEEK.value: self.compose_week,
            CalendarView.DAY.value: self.compose_day,
        }

    def compose(self, view: str, anchor: date, index: AppointmentIndex) -> Dict[str, Any]:
        """Build the payload for a view by name."""
        builder = self.get_view_builders()[CalendarView(view).value]
        return builder(anchor, index)

    # =========================================================================
    # PIECES
    # =========================================================================

    def compose_event(self, appointment: Appointment, index: AppointmentIndex) -> Dict[str, Any]:
        start = to_local(appointment.scheduled_at, index.tz)
        end = to_local(appointment.end_time, index.tz)
        status = appointment.status.value
        return {
            "id": appointment.id,
            "label": f"{appointment.patient_name} - {appointment.type.value.replace('_', ' ').title()}",
            "patient_id": appointment.patient_id,
            "type": appointment.type.value,
            "status": status,
            "status_label": self.theme.get_status_label(status),
            "color": self.theme.get_status_color(status),
            "start": TextFormatter.clock_24h(start),
            "end": TextFormatter.clock_24h(end),
            "display_time": f"{TextFormatter.clock_12h(start)} - {TextFormatter.clock_12h(end)}",
            "duration_minutes": appointment.duration_minutes,
            "facility_id": appointment.facility_id,
            "location_id": appointment.location_id,
            "location": appointment.location_name,
        }

    def compose_legend(self) -> List[Dict[str, str]]:
        return [
            {
                "status": status.value,
                "label": self.theme.get_status_label(status.value),
                "color": self.theme.get_status_color(status.value),
            }
            for status in AppointmentStatus
        ]

    def _header(self, view: CalendarView, anchor: date) -> Dict[str, Any]:
        first, last = visible_range(anchor, view)
        return {
            "schema_version": self.schema_version,
            "view": view.value,
            "title": title_for_view(anchor, view),
            "anchor": anchor.isoformat(),
            "range": {"start": first.isoformat(), "end": last.isoformat()},
            "legend": self.compose_legend(),
        }

    # =========================================================================
    # VIEWS
    # =========================================================================

    def compose_month(self, anchor: date, index: AppointmentIndex) -> Dict[str, Any]:
        today = self.policy.today()
        days = days_for_month(anchor)
        shown = (days[0], days[-1])
        cells = []
        for day in days:
            events = index.for_date(day)
            cells.append({
                "date": day.isoformat(),
                "day": day.day,
                "is_current_month": day.month == anchor.month,
                "is_today": day == today,
                "selectable": self.policy.is_day_selectable(day, shown),
                "events": [self.compose_event(a, index) for a in events[:self.month_event_limit]],
                "more": max(len(events) - self.month_event_limit, 0),
                "total": len(events),
            })

        payload = self._header(CalendarView.MONTH, anchor)
        payload["weekdays"] = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        payload["weeks"] = [cells[i:i + 7] for i in range(0, len(cells), 7)]
        return payload

    def _slot_rows(self, days: List[date], index: AppointmentIndex) -> List[Dict[str, Any]]:
        shown = (days[0], days[-1])
        rows = []
        for slot in time_slots():
            cells = []
            for day in days:
                occupants = index.for_slot(day, slot.hour, slot.minute)
                cells.append({
                    "date": day.isoformat(),
                    "events": [self.compose_event(a, index) for a in occupants],
                    "selectable": self.policy.is_selectable(day, slot.hour, slot.minute, occupants, shown),
                })
            row = slot.to_dict()
            row["cells"] = cells
            rows.append(row)
        return rows

    def compose_week(self, anchor: date, index: AppointmentIndex) -> Dict[str, Any]:
        today = self.policy.today()
        days = days_for_week(anchor)
        payload = self._header(CalendarView.WEEK, anchor)
        payload["days"] = [
            {
                "date": day.isoformat(),
                "weekday": day.strftime("%a"),
                "day": day.day,
                "is_today": day == today,
            }
            for day in days
        ]
        payload["rows"] = self._slot_rows(days, index)
        return payload

    def compose_day(self, anchor: date, index: AppointmentIndex) -> Dict[str, Any]:
        payload = self._header(CalendarView.DAY, anchor)
        payload["is_today"] = anchor == self.policy.today()
        payload["events"] = [self.compose_event(a, index) for a in index.for_date(anchor)]
        payload["rows"] = self._slot_rows([anchor], index)
        return payload
