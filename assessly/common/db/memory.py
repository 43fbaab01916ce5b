"""
Memory Repository Module

This module provides a generic in-memory implementation of the repository
contract for development and testing purposes.
"""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from assessly.common.db.repository import BaseRepository, T, matches_filters, paginate
from assessly.common.error_handling import DuplicateError, NotFoundError

logger = logging.getLogger(__name__)


class MemoryRepository(BaseRepository[T]):
    """
    In-memory implementation of the BaseRepository.

    Entities are stored and returned as deep copies. All writes happen under
    one asyncio lock so compound checks (uniqueness, find-or-create) are atomic.
    """

    def __init__(
        self,
        entity_type: str,
        id_attr: str,
        initial_data: Optional[List[T]] = None
    ):
        """
        Initialize the repository with optional initial data.

        Args:
            entity_type: Name used in errors and logs
            id_attr: Attribute holding the entity id
            initial_data: Optional entities to initialize with
        """
        super().__init__(entity_type)
        self._id_attr = id_attr
        self._items: Dict[str, T] = {}
        self._lock = asyncio.Lock()

        if initial_data:
            for entity in initial_data:
                self._items[self._id_of(entity)] = copy.deepcopy(entity)

    def _id_of(self, entity: T) -> str:
        return getattr(entity, self._id_attr)

    def _check_unique(self, entity: T) -> None:
        """Raise DuplicateError when ``entity`` clashes with a stored one."""

    def _sorted(self, predicate: Callable[[T], bool]) -> List[T]:
        # Reverse insertion order first so equal timestamps still list newest first
        items = [item for item in reversed(list(self._items.values())) if predicate(item)]
        items.sort(key=lambda item: getattr(item, "created_at", None) or datetime.min, reverse=True)
        return items

    async def get(self, entity_id: str) -> Optional[T]:
        item = self._items.get(entity_id)
        return copy.deepcopy(item) if item is not None else None

    async def create(self, entity: T) -> T:
        async with self._lock:
            entity_id = self._id_of(entity)
            if entity_id in self._items:
                raise DuplicateError(self.entity_type, entity_id)
            self._check_unique(entity)
            self._items[entity_id] = copy.deepcopy(entity)
        logger.debug(f"Created {self.entity_type} {entity_id}")
        return copy.deepcopy(entity)

    async def update(self, entity_id: str, entity: T) -> T:
        async with self._lock:
            if entity_id not in self._items:
                raise NotFoundError(self.entity_type, entity_id)
            self._check_unique(entity)
            self._items[entity_id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    async def delete(self, entity_id: str) -> bool:
        async with self._lock:
            return self._items.pop(entity_id, None) is not None

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[T]:
        items = self._sorted(lambda item: matches_filters(item, filters))
        return [copy.deepcopy(item) for item in paginate(items, limit, offset)]

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return sum(1 for item in self._items.values() if matches_filters(item, filters))
