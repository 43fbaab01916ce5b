"""
Test Attempt Repository Module

Besides the generic CRUD contract, attempt stores provide the two
operations the engine relies on for consistency: an insert that refuses a
second live attempt for the same (test, assignment, user) triple, and an
atomic read-modify-write of a single attempt.
"""

import abc
from typing import Callable, List, Optional

from assessly.common.db.repository import BaseRepository
from .model import TestAttempt

# Mutators change the attempt in place; raising aborts the write
AttemptMutator = Callable[[TestAttempt], None]


class AttemptRepository(BaseRepository[TestAttempt]):
    """
    Repository interface for test attempts.

    ``list`` accepts the filters ``test_id``, ``assignment_id``, ``user_id``
    and ``status``.
    """

    @abc.abstractmethod
    async def find_live(self, test_id: str, assignment_id: str, user_id: str) -> Optional[TestAttempt]:
        """Return the in-progress attempt for the triple, if any."""
        pass

    @abc.abstractmethod
    async def find_completed(self, test_id: str, assignment_id: str, user_id: str) -> Optional[TestAttempt]:
        """Return a terminal attempt for the triple, if any."""
        pass

    @abc.abstractmethod
    async def create_live(self, attempt: TestAttempt) -> TestAttempt:
        """
        Insert a new in-progress attempt.

        The check and the insert are atomic, so a start racing another
        start or a submit for the same triple cannot slip in a second attempt.

        Args:
            attempt: Attempt to insert

        Returns:
            The stored attempt

        Raises:
            DuplicateError: If any attempt, live or terminal, already exists for the triple
        """
        pass

    @abc.abstractmethod
    async def modify(self, attempt_id: str, mutator: AttemptMutator) -> TestAttempt:
        """
        Atomically load, change and store one attempt.

        Concurrent calls for the same attempt are serialized, so a mutator
        always sees the latest stored state. If the mutator raises, nothing
        is written and the exception propagates.

        Args:
            attempt_id: Attempt to change
            mutator: Callable changing the attempt in place

        Returns:
            The stored attempt after the change

        Raises:
            NotFoundError: If the attempt doesn't exist
        """
        pass

    @abc.abstractmethod
    async def list_by_user(self, user_id: str) -> List[TestAttempt]:
        """All attempts of a principal, newest first."""
        pass

    @abc.abstractmethod
    async def list_terminal(self) -> List[TestAttempt]:
        """All submitted and auto-submitted attempts, newest first."""
        pass

    @abc.abstractmethod
    async def list_live(self) -> List[TestAttempt]:
        """All in-progress attempts, newest first."""
        pass
