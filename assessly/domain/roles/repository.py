"""
Access Role Repository Module
"""

import abc
from typing import Iterable, Optional, Set

from assessly.common.db.repository import BaseRepository
from .model import AccessRole


class RoleRepository(BaseRepository[AccessRole]):
    """
    Repository interface for access roles.

    Role names are unique; ``create`` and ``update`` raise DuplicateError
    on a clash. ``list`` orders roles by name.
    """

    @abc.abstractmethod
    async def get_by_name(self, name: str) -> Optional[AccessRole]:
        pass

    @abc.abstractmethod
    async def permissions_for(self, role_names: Iterable[str]) -> Set[str]:
        """
        Resolve role names to permissions.

        Args:
            role_names: Role names held by a principal

        Returns:
            Union of the permissions of the active roles with those names
        """
        pass
