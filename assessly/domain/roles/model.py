"""
Access Role Domain Model Module

Access roles map role names carried by a principal to permission strings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from assessly.common.auth.permissions import is_known_permission
from assessly.common.error_handling import ValidationError
from assessly.common.utils import new_id, utcnow, serialize_datetime, parse_datetime, unique_in_order


def _clean_permissions(permissions: Optional[List[str]]) -> List[str]:
    return unique_in_order(p.strip() for p in permissions or [] if p and p.strip())


@dataclass
class AccessRole:
    """
    Represents a named bundle of permissions.

    Attributes:
        role_id: Unique identifier
        name: Unique role name, matched against the roles in a principal's token
        description: Optional description
        permissions: Permission strings granted by the role
        is_active: Inactive roles grant nothing
        created_by: Principal that created the role
    """
    role_id: str
    name: str
    description: str = ""
    permissions: List[str] = field(default_factory=list)
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               name: str,
               description: str = "",
               permissions: Optional[List[str]] = None,
               is_active: bool = True,
               created_by: Optional[str] = None,
               now: Optional[datetime] = None) -> 'AccessRole':
        stamp = now or utcnow()
        role = cls(
            role_id=new_id(),
            name=(name or "").strip(),
            description=(description or "").strip(),
            permissions=_clean_permissions(permissions),
            is_active=is_active,
            created_by=created_by,
            created_at=stamp,
            updated_at=stamp
        )
        role.validate()
        return role

    def validate(self) -> None:
        if not self.name:
            raise ValidationError("Invalid role", details={'errors': {'name': "Please add a role name"}})
        unknown = [p for p in self.permissions if not is_known_permission(p)]
        if unknown:
            raise ValidationError("Unknown permissions", details={'permissions': unknown})

    def update(self,
               name: Optional[str] = None,
               description: Optional[str] = None,
               permissions: Optional[List[str]] = None,
               is_active: Optional[bool] = None,
               now: Optional[datetime] = None) -> None:
        if name:
            self.name = name.strip()
        if description is not None:
            self.description = description.strip()
        if permissions is not None:
            self.permissions = _clean_permissions(permissions)
        if is_active is not None:
            self.is_active = is_active
        self.validate()
        self.updated_at = now or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'role_id': self.role_id,
            'name': self.name,
            'description': self.description,
            'permissions': list(self.permissions),
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': serialize_datetime(self.created_at),
            'updated_at': serialize_datetime(self.updated_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccessRole':
        return cls(
            role_id=data['role_id'],
            name=data.get('name', ''),
            description=data.get('description') or '',
            permissions=list(data.get('permissions') or []),
            is_active=data.get('is_active', True),
            created_by=data.get('created_by'),
            created_at=parse_datetime(data.get('created_at')) or utcnow(),
            updated_at=parse_datetime(data.get('updated_at')) or utcnow()
        )
