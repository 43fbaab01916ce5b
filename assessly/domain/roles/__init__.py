"""
Access role domain.
"""

from .model import AccessRole
from .repository import RoleRepository
from .memory_repository import MemoryRoleRepository

__all__ = ['AccessRole', 'RoleRepository', 'MemoryRoleRepository']
