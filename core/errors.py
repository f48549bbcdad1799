"""
Error taxonomy shared by the scheduling layers.

Validation problems are raised before any collaborator is called.
Transport problems abort the operation without touching local state.
"""

from typing import Any, Dict, List, Optional

from .domain import ValidationError


class SchedulingError(Exception):
    """Base class for every error raised by the calendar engine."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message}


class ValidationFailed(SchedulingError):
    """One or more fields failed validation."""

    status_code = 422

    def __init__(self, errors: List[ValidationError], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message or "; ".join(e.message for e in self.errors) or "Validation failed")

    @classmethod
    def single(cls, field: str, message: str, code: str = "invalid") -> "ValidationFailed":
        return cls([ValidationError(field=field, message=message, code=code)])

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [e.to_dict() for e in self.errors]
        return data


class ConflictError(ValidationFailed):
    """The requested slot is already occupied."""

    status_code = 409


class NotFoundError(SchedulingError):
    """An appointment or facility id is unknown to the collaborator."""

    status_code = 404


class TransportError(SchedulingError):
    """A collaborator could not be reached or answered with a failure."""

    status_code = 502
