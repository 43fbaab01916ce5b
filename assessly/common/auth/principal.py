"""
Authenticated principal.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Union

from assessly.common.auth.permissions import Permission


@dataclass(frozen=True)
class Principal:
    """
    The identity a request acts on behalf of.

    Attributes:
        id: Stable principal identifier (the token subject)
        roles: Role names currently held
        permissions: Effective permission strings
    """
    id: str
    roles: FrozenSet[str] = field(default_factory=frozenset)
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    def has_permission(self, permission: Union[Permission, str]) -> bool:
        value = permission.value if isinstance(permission, Permission) else permission
        return value in self.permissions

    def has_any(self, permissions: Iterable[Union[Permission, str]]) -> bool:
        return any(self.has_permission(permission) for permission in permissions)
