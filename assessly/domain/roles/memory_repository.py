"""
Memory Role Repository Module
"""

import copy
from typing import Callable, Iterable, List, Optional, Set

from assessly.common.db.memory import MemoryRepository
from assessly.common.error_handling import DuplicateError
from .model import AccessRole
from .repository import RoleRepository


class MemoryRoleRepository(MemoryRepository[AccessRole], RoleRepository):
    """In-memory implementation of the RoleRepository."""

    def __init__(self, initial_data: Optional[List[AccessRole]] = None):
        super().__init__("AccessRole", "role_id", initial_data)

    def _check_unique(self, entity: AccessRole) -> None:
        for role in self._items.values():
            if role.name == entity.name and role.role_id != entity.role_id:
                raise DuplicateError("AccessRole", entity.name)

    def _sorted(self, predicate: Callable[[AccessRole], bool]) -> List[AccessRole]:
        return sorted((role for role in self._items.values() if predicate(role)), key=lambda role: role.name)

    async def get_by_name(self, name: str) -> Optional[AccessRole]:
        for role in self._items.values():
            if role.name == name:
                return copy.deepcopy(role)
        return None

    async def permissions_for(self, role_names: Iterable[str]) -> Set[str]:
        names = set(role_names)
        permissions: Set[str] = set()
        for role in self._items.values():
            if role.is_active and role.name in names:
                permissions.update(role.permissions)
        return permissions
