"""
Memory Test Repository Module
"""

from typing import List, Optional

from assessly.common.db.memory import MemoryRepository
from .model import Test
from .repository import TestRepository


class MemoryTestRepository(MemoryRepository[Test], TestRepository):
    """In-memory implementation of the TestRepository."""
    __test__ = False

    def __init__(self, initial_data: Optional[List[Test]] = None):
        super().__init__("Test", "test_id", initial_data)
