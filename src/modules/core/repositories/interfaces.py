"""Generic repository interface.

``IRepository[T]`` is the base contract the module repositories extend.
Services depend on these abstractions and receive the Django
implementations through their constructors, so unit tests can pass mocks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base repository contract for the aggregate ``T``."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key (``None`` when missing or malformed)."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist an entity and move its pending domain events to the outbox."""
