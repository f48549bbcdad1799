"""
Presentation Layer Base Classes.

The presentation layer turns domain objects into JSON-ready payloads
that a calendar front end renders as-is.

Key principles:
- Payloads are stateless representations
- No business logic in composers (selectability comes from policies)
- Consistent theming across views
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Callable, Dict, Optional, Union


class PayloadSchemaVersion:
    """Payload schema version for backward compatibility."""
    CURRENT = "1.0"


@dataclass
class ViewTheme:
    """
    Theme configuration for calendar payloads.

    Provides consistent styling across month, week and day views.
    """
    # Appointment status colors
    status_colors: Dict[str, str] = field(default_factory=lambda: {
        "scheduled": "blue",
        "completed": "green",
        "no_show": "red",
        "canceled": "gray",
        "rescheduled": "gray",
    })

    # Human labels for statuses
    status_labels: Dict[str, str] = field(default_factory=lambda: {
        "scheduled": "Scheduled",
        "completed": "Completed",
        "no_show": "No Show",
        "canceled": "Canceled",
        "rescheduled": "Rescheduled",
    })

    def get_status_color(self, status: str) -> str:
        """Get the color for a status."""
        return self.status_colors.get(status.lower(), "gray")

    def get_status_label(self, status: str) -> str:
        """Get the display label for a status."""
        return self.status_labels.get(status.lower(), status.replace("_", " ").title())


# Default theme instance
DEFAULT_THEME = ViewTheme()


class ViewComposer(ABC):
    """
    Abstract base class for view composers.

    A ViewComposer transforms domain data into payloads.
    Each use case has its own composer that knows how to
    present its specific data types.

    Example:
        class CalendarComposer(ViewComposer):
            def compose_month(self, ...) -> dict:
                ...
    """

    def __init__(self, theme: Optional[ViewTheme] = None):
        """
        Initialize the composer with a theme.

        Args:
            theme: Optional custom theme (uses DEFAULT_THEME if not provided)
        """
        self.theme = theme or DEFAULT_THEME
        self.schema_version = PayloadSchemaVersion.CURRENT

    @abstractmethod
    def get_view_builders(self) -> Dict[str, Callable]:
        """
        Return a dictionary of view builder methods.

        This allows the surface to call views by name.

        Returns:
            Dict mapping view names to builder methods
        """
        pass


class TextFormatter:
    """
    Utility class for formatting text in payloads.

    Provides consistent formatting for common data types.
    """

    @staticmethod
    def clock_24h(value: Union[time, datetime]) -> str:
        """Format as HH:MM."""
        return f"{value.hour:02d}:{value.minute:02d}"

    @staticmethod
    def clock_12h(value: Union[time, datetime]) -> str:
        """Format as h:MM AM/PM (midnight is 12:00 AM, noon is 12:00 PM)."""
        hour = value.hour % 12 or 12
        suffix = "AM" if value.hour < 12 else "PM"
        return f"{hour}:{value.minute:02d} {suffix}"

