"""
Storage contracts shared by all entity repositories.
"""

from assessly.common.db.repository import BaseRepository, matches_filters, paginate
from assessly.common.db.memory import MemoryRepository

__all__ = ['BaseRepository', 'MemoryRepository', 'matches_filters', 'paginate']
