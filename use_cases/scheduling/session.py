"""
Scheduling Session Context.

Extends the core SessionContext with the calendar's selection state.
"""

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Any, Dict, Optional

from core.session import SessionContext

from .domain.calendar_grid import CalendarView
from .models import Appointment, AppointmentForm


class DialogMode(Enum):
    """What the appointment dialog is doing."""
    CLOSED = "closed"
    CREATE = "create"
    EDIT = "edit"


@dataclass
class SelectionState(SessionContext):
    """
    Calendar selection state for one viewer.

    Navigation (view and anchor) survives closing the dialog; everything
    else is reset by reset_dialog().
    """

    # Navigation
    view_type: CalendarView = CalendarView.MONTH
    anchor_date: Optional[date] = None

    # Selection
    selected_date: Optional[date] = None
    selected_time: Optional[time] = None
    selected_event: Optional[Appointment] = None

    # Dialog
    dialog_mode: DialogMode = DialogMode.CLOSED
    form: Optional[AppointmentForm] = None
    pending_delete_id: Optional[int] = None

    # Bumped on every open/close so late completions can tell the dialog changed
    dialog_generation: int = 0

    @property
    def dialog_open(self) -> bool:
        return self.dialog_mode != DialogMode.CLOSED

    def open_dialog(self, mode: DialogMode, form: AppointmentForm):
        self.dialog_mode = mode
        self.form = form
        self.pending_delete_id = None
        self.dialog_generation += 1
        self._touch()

    def reset_dialog(self):
        """Reset selection and dialog state, keeping navigation."""
        self.selected_date = None
        self.selected_time = None
        self.selected_event = None
        self.dialog_mode = DialogMode.CLOSED
        self.form = None
        self.pending_delete_id = None
        self.dialog_generation += 1
        self._touch()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "view_type": self.view_type.value,
            "anchor_date": self.anchor_date.isoformat() if self.anchor_date else None,
            "selected_date": self.selected_date.isoformat() if self.selected_date else None,
            "selected_time": self.selected_time.strftime("%H:%M") if self.selected_time else None,
            "selected_event_id": self.selected_event.id if self.selected_event else None,
            "dialog_open": self.dialog_open,
            "dialog_mode": self.dialog_mode.value,
            "form": self.form.to_dict() if self.form else None,
            "pending_delete_id": self.pending_delete_id,
        })
        return data
