"""
Temporal Grid Generator.

Pure calendar arithmetic for the month, week and day views.
Weeks start on Sunday. Nothing here reads the clock: every function is a
deterministic function of its arguments.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Tuple

import pytz

from core.presentation import TextFormatter

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

SLOT_MINUTES = 15
SLOTS_PER_DAY = 24 * 60 // SLOT_MINUTES  # 96
MONTH_GRID_DAYS = 42  # six full weeks


class CalendarView(str, Enum):
    """Granularities the calendar can display."""
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


@dataclass(frozen=True)
class TimeSlot:
    """One 15-minute row of the week and day views."""
    hour: int
    minute: int

    @property
    def start(self) -> time:
        return time(self.hour, self.minute)

    @property
    def time(self) -> str:
        return TextFormatter.clock_24h(self.start)

    @property
    def display_time(self) -> str:
        return TextFormatter.clock_12h(self.start)

    def to_dict(self) -> Dict:
        return {
            "hour": self.hour,
            "minute": self.minute,
            "time": self.time,
            "display_time": self.display_time,
        }


# =============================================================================
# GRIDS
# =============================================================================

def week_start(day: date) -> date:
    """The Sunday on or before day."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def days_for_month(anchor: date) -> List[date]:
    """
    The 42 dates shown in a month grid.

    Starts on the Sunday on/before the 1st of the anchor's month and runs
    for six full weeks, so leading and trailing days of the neighbouring
    months fill the first and last rows.
    """
    start = week_start(anchor.replace(day=1))
    return [start + timedelta(days=i) for i in range(MONTH_GRID_DAYS)]


def days_for_week(anchor: date) -> List[date]:
    """Seven dates starting on the Sunday on/before anchor."""
    start = week_start(anchor)
    return [start + timedelta(days=i) for i in range(7)]


def days_for_view(anchor: date, view: CalendarView) -> List[date]:
    """Dates visible in the given view."""
    view = CalendarView(view)
    if view == CalendarView.MONTH:
        return days_for_month(anchor)
    if view == CalendarView.WEEK:
        return days_for_week(anchor)
    return [anchor]


def visible_range(anchor: date, view: CalendarView) -> Tuple[date, date]:
    """First and last date visible in the given view."""
    days = days_for_view(anchor, view)
    return days[0], days[-1]


def time_slots() -> List[TimeSlot]:
    """The 96 quarter-hour slots of a day, 00:00 through 23:45."""
    return [
        TimeSlot(hour=i * SLOT_MINUTES // 60, minute=i * SLOT_MINUTES % 60)
        for i in range(SLOTS_PER_DAY)
    ]


# =============================================================================
# NAVIGATION
# =============================================================================

def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def shift_anchor(anchor: date, view: CalendarView, step: int) -> date:
    """Move the anchor one view-length per step (negative steps go back)."""
    view = CalendarView(view)
    if view == CalendarView.MONTH:
        return add_months(anchor, step)
    if view == CalendarView.WEEK:
        return anchor + timedelta(days=7 * step)
    return anchor + timedelta(days=step)


def title_for_view(anchor: date, view: CalendarView) -> str:
    """Header title: 'October 2026', 'Week of Oct 18' or 'Sunday, October 18, 2026'."""
    view = CalendarView(view)
    if view == CalendarView.MONTH:
        return f"{calendar.month_name[anchor.month]} {anchor.year}"
    if view == CalendarView.WEEK:
        start = week_start(anchor)
        return f"Week of {calendar.month_abbr[start.month]} {start.day}"
    return (
        f"{calendar.day_name[anchor.weekday()]}, "
        f"{calendar.month_name[anchor.month]} {anchor.day}, {anchor.year}"
    )


# =============================================================================
# TIME ZONE PROJECTION
# =============================================================================

def resolve_timezone(name: str) -> pytz.BaseTzInfo:
    """Look up an IANA zone, falling back to UTC for unknown names."""
    try:
        return pytz.timezone(name or "UTC")
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown time zone '{name}', using UTC")
        return pytz.UTC


def to_local(ts: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Project an instant into the viewer's zone (naive input is UTC)."""
    if ts.tzinfo is None:
        ts = pytz.UTC.localize(ts)
    return ts.astimezone(tz)


def local_day(ts: datetime, tz: pytz.BaseTzInfo) -> date:
    """The viewer's calendar day on which an instant falls."""
    return to_local(ts, tz).date()


def local_instant(day: date, hour: int, minute: int, tz: pytz.BaseTzInfo) -> datetime:
    """An aware datetime for a wall-clock cell in the viewer's zone."""
    return tz.localize(datetime.combine(day, time(hour, minute)))
