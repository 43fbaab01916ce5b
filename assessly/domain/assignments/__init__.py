"""
Assignment domain and eligibility resolution.
"""

from .model import Assignment
from .repository import AssignmentRepository
from .memory_repository import MemoryAssignmentRepository
from .resolver import AssignmentResolver, is_assignment_active, matches_direct

__all__ = [
    'Assignment',
    'AssignmentRepository',
    'MemoryAssignmentRepository',
    'AssignmentResolver',
    'is_assignment_active',
    'matches_direct',
]
