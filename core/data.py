"""
Data Layer Base Classes.

The data layer provides the Repository pattern for collaborator access.
This abstracts away where appointments actually live (the clinic REST API,
an in-memory store for offline use and tests) and gives the domain layer
a clean, awaitable interface.

Key principles:
- Repositories handle CRUD operations only
- No business logic in repositories
- Failures surface as core.errors exceptions, never raw transport errors
- Backends are swapped via dependency injection
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

# Type variable for entity types
T = TypeVar("T")


@dataclass
class Pagination:
    """Pagination block returned with list queries."""
    current_page: int = 1
    last_page: int = 1
    per_page: int = 0
    total: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Pagination"]:
        if not data:
            return None
        return cls(
            current_page=int(data.get("current_page", 1)),
            last_page=int(data.get("last_page", 1)),
            per_page=int(data.get("per_page", 0)),
            total=int(data.get("total", 0)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "current_page": self.current_page,
            "last_page": self.last_page,
            "per_page": self.per_page,
            "total": self.total,
        }


@dataclass
class Page(Generic[T]):
    """Result of a repository list query with optional pagination info."""
    items: List[T] = field(default_factory=list)
    pagination: Optional[Pagination] = None

    @property
    def has_more(self) -> bool:
        if self.pagination is None:
            return False
        return self.pagination.current_page < self.pagination.last_page


class Repository(ABC, Generic[T]):
    """
    Abstract base class for repositories.

    A Repository provides data access methods for a specific entity type.
    Every method is a coroutine because the real backend is remote.

    Type parameter T represents the entity type this repository manages.

    Example:
        class AppointmentRepository(Repository[Appointment]):
            async def get(self, id: int) -> Optional[Appointment]:
                body = await self._send("GET", f"/appointments/{id}")
                return Appointment.model_validate(body)
    """

    @abstractmethod
    async def get(self, id: int) -> Optional[T]:
        """
        Get an entity by its ID.

        Args:
            id: The entity's unique identifier

        Returns:
            The entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def list(self, filters: Any = None) -> Page[Any]:
        """
        List entities matching the filters.

        Args:
            filters: Backend-specific filter object

        Returns:
            Page containing the matching records
        """
        pass

    @abstractmethod
    async def create(self, payload: Any) -> T:
        """
        Create an entity.

        Returns:
            The stored entity (with its assigned ID)
        """
        pass

    @abstractmethod
    async def update(self, id: int, payload: Any) -> T:
        """
        Apply a partial update to an entity.

        Returns:
            The updated entity
        """
        pass

    @abstractmethod
    async def delete(self, id: int) -> None:
        """
        Delete an entity by ID.

        Raises:
            NotFoundError: if the entity does not exist
        """
        pass
