"""
Memory Assignment Repository Module
"""

from typing import List, Optional

from assessly.common.db.memory import MemoryRepository
from .model import Assignment
from .repository import AssignmentRepository


class MemoryAssignmentRepository(MemoryRepository[Assignment], AssignmentRepository):
    """In-memory implementation of the AssignmentRepository."""

    def __init__(self, initial_data: Optional[List[Assignment]] = None):
        super().__init__("Assignment", "assignment_id", initial_data)
