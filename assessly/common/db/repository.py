"""
Repository contract

The generic repository contract shared by every entity
store, plus the filter matching used by implementations that evaluate
filters in Python.
"""

import enum
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, List, Dict, Any

T = TypeVar('T')


def _normalize(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    return value


def matches_filters(entity: Any, filters: Optional[Dict[str, Any]]) -> bool:
    """
    Check an entity against equality filters.

    A filter on a list attribute matches when the expected value is one of
    its elements; any other attribute must compare equal.

    Args:
        entity: Entity to test
        filters: Mapping of attribute name to expected value

    Returns:
        True if every filter matches
    """
    if not filters:
        return True
    for key, expected in filters.items():
        actual = getattr(entity, key, None)
        expected = _normalize(expected)
        if isinstance(actual, (list, set, tuple, frozenset)):
            if expected not in [_normalize(item) for item in actual]:
                return False
        elif _normalize(actual) != expected:
            return False
    return True


def paginate(items: List[T], limit: Optional[int] = None, offset: int = 0) -> List[T]:
    """Apply offset/limit to an already ordered list."""
    if offset:
        items = items[offset:]
    if limit is not None:
        items = items[:limit]
    return items


class BaseRepository(Generic[T], ABC):
    """
    CRUD contract for one entity type.

    Implementations hand out copies: mutating a returned entity
    never changes stored state until it is written back with ``update``.
    """

    def __init__(self, entity_type: str):
        self.entity_type = entity_type

    @abstractmethod
    async def get(self, entity_id: str) -> Optional[T]:
        """Return the entity, or None."""
        pass

    @abstractmethod
    async def create(self, entity: T) -> T:
        """Store a new entity. Raises DuplicateError on a uniqueness clash."""
        pass

    @abstractmethod
    async def update(self, entity_id: str, entity: T) -> T:
        """
        Replace the stored entity with ``entity``.

        Returns:
            The stored entity

        Raises:
            NotFoundError: If the entity doesn't exist
            DuplicateError: If the update violates a uniqueness rule
        """
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """Remove an entity; False when there was nothing to remove."""
        pass

    @abstractmethod
    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[T]:
        """
        List entities matching the given filters, newest first.

        Args:
            filters: Equality filters (see ``matches_filters``)
            limit: Page size, None for everything
            offset: Entities to skip
        """
        pass

    @abstractmethod
    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Number of entities matching ``filters``."""
        pass
