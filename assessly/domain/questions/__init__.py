"""
Question bank domain.
"""

from .model import Question, QuestionKind, QuestionOption, Difficulty, UNCATEGORIZED_TOPIC
from .repository import QuestionRepository
from .memory_repository import MemoryQuestionRepository

__all__ = [
    'Question',
    'QuestionKind',
    'QuestionOption',
    'Difficulty',
    'UNCATEGORIZED_TOPIC',
    'QuestionRepository',
    'MemoryQuestionRepository',
]
