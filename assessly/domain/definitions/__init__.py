"""
Test definition domain.
"""

from .model import Test
from .repository import TestRepository
from .memory_repository import MemoryTestRepository

__all__ = ['Test', 'TestRepository', 'MemoryTestRepository']
