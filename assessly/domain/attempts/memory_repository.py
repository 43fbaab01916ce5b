"""
Memory Attempt Repository Module
"""

import copy
from typing import List, Optional

from assessly.common.db.memory import MemoryRepository
from assessly.common.error_handling import DuplicateError, NotFoundError
from .model import AttemptStatus, TestAttempt
from .repository import AttemptMutator, AttemptRepository


class MemoryAttemptRepository(MemoryRepository[TestAttempt], AttemptRepository):
    """
    In-memory implementation of the AttemptRepository.

    The existing-attempt check in ``create_live`` and every ``modify`` run under
    the repository lock.
    """

    def __init__(self, initial_data: Optional[List[TestAttempt]] = None):
        super().__init__("TestAttempt", "attempt_id", initial_data)

    def _find(self, test_id: str, assignment_id: str, user_id: str, live: Optional[bool]) -> Optional[TestAttempt]:
        for attempt in self._sorted(lambda item: True):
            if (attempt.test_id == test_id and attempt.assignment_id == assignment_id
                    and attempt.user_id == user_id and live in (None, attempt.is_live)):
                return copy.deepcopy(attempt)
        return None

    async def find_live(self, test_id: str, assignment_id: str, user_id: str) -> Optional[TestAttempt]:
        return self._find(test_id, assignment_id, user_id, live=True)

    async def find_completed(self, test_id: str, assignment_id: str, user_id: str) -> Optional[TestAttempt]:
        return self._find(test_id, assignment_id, user_id, live=False)

    async def create_live(self, attempt: TestAttempt) -> TestAttempt:
        async with self._lock:
            if self._find(attempt.test_id, attempt.assignment_id, attempt.user_id, live=None):
                raise DuplicateError(
                    "TestAttempt",
                    f"{attempt.test_id}/{attempt.assignment_id}/{attempt.user_id}"
                )
            self._items[attempt.attempt_id] = copy.deepcopy(attempt)
        return copy.deepcopy(attempt)

    async def modify(self, attempt_id: str, mutator: AttemptMutator) -> TestAttempt:
        async with self._lock:
            stored = self._items.get(attempt_id)
            if stored is None:
                raise NotFoundError("TestAttempt", attempt_id)
            working = copy.deepcopy(stored)
            mutator(working)
            self._items[attempt_id] = working
            return copy.deepcopy(working)

    async def list_by_user(self, user_id: str) -> List[TestAttempt]:
        return await self.list({'user_id': user_id})

    async def list_terminal(self) -> List[TestAttempt]:
        items = self._sorted(lambda item: item.status != AttemptStatus.IN_PROGRESS)
        return [copy.deepcopy(item) for item in items]

    async def list_live(self) -> List[TestAttempt]:
        return await self.list({'status': AttemptStatus.IN_PROGRESS})
