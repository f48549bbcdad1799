"""
Domain Layer Base Classes.

The domain layer contains pure business logic with no external dependencies.
Calendar rules built on these bases are:
- Easy to test (no mocking needed, time is injected)
- Reusable across the HTTP surface and the coordinator
- Clear and self-documenting

Example Usage:
    class AvailabilityPolicy(PolicyEngine):
        def evaluate(self, context: SlotCandidate) -> PolicyDecision:
            # Pure business logic here
            ...
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List
from datetime import datetime, timezone
from enum import Enum


class PolicyResult(Enum):
    """Result of a policy evaluation."""
    APPROVED = "approved"
    DENIED = "denied"


@dataclass
class PolicyDecision:
    """
    The outcome of a policy evaluation.

    Attributes:
        result: The policy decision result
        reason: Human-readable explanation
        code: Machine-readable reason code
        metadata: Additional context for the decision
    """
    result: PolicyResult
    reason: str
    code: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_approved(self) -> bool:
        return self.result == PolicyResult.APPROVED

    @property
    def is_denied(self) -> bool:
        return self.result == PolicyResult.DENIED


class PolicyEngine(ABC):
    """
    Abstract base class for policy engines.

    A PolicyEngine encapsulates a set of business rules that can be
    evaluated against a context to produce a decision.

    Example:
        class WeekdayPolicy(PolicyEngine):
            def evaluate(self, context) -> PolicyDecision:
                if context.day.weekday() >= 5:
                    return PolicyDecision(
                        result=PolicyResult.DENIED,
                        reason="Clinic is closed on weekends",
                        code="weekend",
                    )
                return PolicyDecision(
                    result=PolicyResult.APPROVED,
                    reason="Clinic is open",
                )
    """

    @abstractmethod
    def evaluate(self, context: Any) -> PolicyDecision:
        """
        Evaluate the policy against the given context.

        Args:
            context: Object containing all data needed for evaluation

        Returns:
            PolicyDecision with the result and explanation
        """
        pass


@dataclass
class ValidationError:
    """A validation error with field and message."""
    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


class Validator(ABC):
    """
    Abstract base class for validators.

    Validators check that data meets business requirements before processing.
    """

    @abstractmethod
    def validate(self, data: Any) -> List[ValidationError]:
        """
        Validate the data and return any errors.

        Args:
            data: The data to validate

        Returns:
            List of ValidationError objects (empty if valid)
        """
        pass

    def is_valid(self, data: Any) -> bool:
        """Check if data is valid."""
        return len(self.validate(data)) == 0


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

