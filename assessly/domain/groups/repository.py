"""
Eligibility Group Repository Module
"""

import abc
from typing import Iterable, Optional

from assessly.common.db.repository import BaseRepository
from .model import EligibilityGroup


class GroupRepository(BaseRepository[EligibilityGroup]):
    """
    Repository interface for eligibility groups.

    Group names are unique; ``create`` and ``update`` raise DuplicateError
    on a clash.
    """

    @abc.abstractmethod
    async def get_by_name(self, name: str) -> Optional[EligibilityGroup]:
        pass

    @abc.abstractmethod
    async def has_active_member(self, group_ids: Iterable[str], principal_id: str) -> bool:
        """
        Check current membership.

        Args:
            group_ids: Groups to look in
            principal_id: Principal to look for

        Returns:
            True if any of the groups is active and lists the principal
        """
        pass
