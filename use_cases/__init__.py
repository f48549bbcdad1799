"""
Use Cases Package.

Each use case is a self-contained module with its own domain rules,
collaborator adapters, presentation and session state.

Available use cases:
- scheduling: Clinic appointment calendar

Architecture:
Each use case follows the layered architecture pattern defined in core/:
- domain/: Pure business logic (grids, policies, rules)
- data/: Repository pattern for collaborator access
- presentation/: Payload composition
- session.py: Use-case-specific session context
- server.py: Wiring of the layers
"""

from use_cases.scheduling import SchedulingCoordinator, SchedulingServer

__all__ = [
    "SchedulingCoordinator",
    "SchedulingServer",
]
