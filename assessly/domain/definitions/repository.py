"""
Test Definition Repository Module
"""

from assessly.common.db.repository import BaseRepository
from .model import Test


class TestRepository(BaseRepository[Test]):
    """
    Repository interface for test definitions.

    ``list`` accepts the filter ``created_by``.
    """
    __test__ = False
