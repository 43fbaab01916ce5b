"""
Eligibility group domain.
"""

from .model import EligibilityGroup
from .repository import GroupRepository
from .memory_repository import MemoryGroupRepository

__all__ = ['EligibilityGroup', 'GroupRepository', 'MemoryGroupRepository']
