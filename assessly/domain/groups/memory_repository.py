"""
Memory Group Repository Module
"""

import copy
from typing import Iterable, List, Optional

from assessly.common.db.memory import MemoryRepository
from assessly.common.error_handling import DuplicateError
from .model import EligibilityGroup
from .repository import GroupRepository


class MemoryGroupRepository(MemoryRepository[EligibilityGroup], GroupRepository):
    """In-memory implementation of the GroupRepository."""

    def __init__(self, initial_data: Optional[List[EligibilityGroup]] = None):
        super().__init__("EligibilityGroup", "group_id", initial_data)

    def _check_unique(self, entity: EligibilityGroup) -> None:
        for group in self._items.values():
            if group.name == entity.name and group.group_id != entity.group_id:
                raise DuplicateError("EligibilityGroup", entity.name)

    async def get_by_name(self, name: str) -> Optional[EligibilityGroup]:
        for group in self._items.values():
            if group.name == name:
                return copy.deepcopy(group)
        return None

    async def has_active_member(self, group_ids: Iterable[str], principal_id: str) -> bool:
        for group_id in group_ids:
            group = self._items.get(group_id)
            if group is not None and group.has_member(principal_id):
                return True
        return False
