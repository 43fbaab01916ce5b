"""
Question Repository Module

This module defines the repository interface for accessing and storing
Question entities.
"""

import abc
from typing import Iterable, List

from assessly.common.db.repository import BaseRepository
from .model import Question


class QuestionRepository(BaseRepository[Question]):
    """
    Abstract base class for question repositories.

    ``list`` accepts the filters ``kind``, ``difficulty``, ``topic``, ``tag``
    and ``created_by``.
    """

    @abc.abstractmethod
    async def find_by_ids(self, question_ids: Iterable[str]) -> List[Question]:
        """
        Load the questions with the given IDs.

        Missing IDs are skipped; the result follows the order of ``question_ids``.

        Args:
            question_ids: IDs to load

        Returns:
            The existing questions, in request order
        """
        pass

    async def existing_ids(self, question_ids: Iterable[str]) -> List[str]:
        """
        Filter ``question_ids`` down to those that still exist, keeping order.
        """
        return [question.question_id for question in await self.find_by_ids(question_ids)]
