"""
Memory Question Repository Module

This module provides an in-memory implementation of the QuestionRepository
interface for development and testing purposes.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional

from assessly.common.db.memory import MemoryRepository
from .model import Question
from .repository import QuestionRepository


def question_filters(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Translate the public ``tag`` filter to the ``tags`` attribute."""
    filters = dict(filters or {})
    if 'tag' in filters:
        filters['tags'] = filters.pop('tag')
    return filters


class MemoryQuestionRepository(MemoryRepository[Question], QuestionRepository):
    """
    In-memory implementation of the QuestionRepository.
    """

    def __init__(self, initial_data: Optional[List[Question]] = None):
        super().__init__("Question", "question_id", initial_data)

    async def find_by_ids(self, question_ids: Iterable[str]) -> List[Question]:
        return [
            copy.deepcopy(self._items[question_id])
            for question_id in question_ids
            if question_id in self._items
        ]

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Question]:
        return await super().list(question_filters(filters), limit, offset)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return await super().count(question_filters(filters))
