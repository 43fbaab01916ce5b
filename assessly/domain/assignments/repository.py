"""
Assignment Repository Module
"""

from assessly.common.db.repository import BaseRepository
from .model import Assignment


class AssignmentRepository(BaseRepository[Assignment]):
    """
    Repository interface for assignments.

    ``list`` accepts the filters ``test_id`` and ``is_active``.
    """
