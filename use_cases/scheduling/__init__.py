"""
Clinic Appointment Scheduling Use Case.

Structure:
- domain/: Pure business logic (no I/O)
  - calendar_grid.py: month/week/day grids, slots, navigation
  - index.py: AppointmentIndex, IndexStore
  - policies.py: AvailabilityPolicy
  - lifecycle.py: status transitions and field rules
- data/: Collaborator access
  - repositories.py: contracts and in-memory implementations
  - http_client.py: clinic REST API adapters
- presentation/: Calendar payload composition
- cascade.py: CascadeResolver (facility -> location)
- lifecycle.py: AppointmentLifecycle service
- coordinator.py: SchedulingCoordinator
- session.py: SelectionState
- server.py: SchedulingServer wiring
"""

from .coordinator import SchedulingCoordinator
from .server import SchedulingServer
from .session import DialogMode, SelectionState

__all__ = [
    "SchedulingCoordinator",
    "SchedulingServer",
    "SelectionState",
    "DialogMode",
]
