"""
Core Framework for the Clinic Calendar.

This module provides the extensible base classes and interfaces
that use cases implement. The layered architecture ensures:

1. Domain Layer - Pure business rules, no I/O
2. Data Layer - Repository pattern for collaborator access
3. Presentation Layer - Payload composition
4. Session Layer - Per-viewer state

Each use case follows this pattern for consistency and reusability.
"""

from .domain import PolicyEngine, PolicyDecision, PolicyResult, ValidationError, Validator
from .data import Page, Pagination, Repository
from .presentation import ViewComposer, ViewTheme, TextFormatter
from .session import SessionManager, SessionContext
from .clock import Clock, FixedClock, SystemClock
from .errors import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    TransportError,
    ValidationFailed,
)

__all__ = [
    # Domain
    "PolicyEngine",
    "PolicyDecision",
    "PolicyResult",
    "ValidationError",
    "Validator",
    # Data
    "Page",
    "Pagination",
    "Repository",
    # Presentation
    "ViewComposer",
    "ViewTheme",
    "TextFormatter",
    # Session
    "SessionManager",
    "SessionContext",
    # Clock
    "Clock",
    "FixedClock",
    "SystemClock",
    # Errors
    "SchedulingError",
    "ValidationFailed",
    "ConflictError",
    "NotFoundError",
    "TransportError",
]
