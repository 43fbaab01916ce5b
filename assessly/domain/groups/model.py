"""
Eligibility Group Domain Model Module

Named, mutable rosters of principals that assignments can target.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from assessly.common.error_handling import ValidationError
from assessly.common.utils import new_id, utcnow, serialize_datetime, parse_datetime, unique_in_order


@dataclass
class EligibilityGroup:
    """
    Represents a group of principals.

    Attributes:
        group_id: Unique identifier
        name: Unique display name
        description: Optional description
        members: Principal ids in the group
        is_active: Inactive groups grant no eligibility
        created_by: Principal that created the group
    """
    group_id: str
    name: str
    description: str = ""
    members: List[str] = field(default_factory=list)
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               name: str,
               description: str = "",
               members: Optional[List[str]] = None,
               is_active: bool = True,
               created_by: Optional[str] = None,
               now: Optional[datetime] = None) -> 'EligibilityGroup':
        stamp = now or utcnow()
        group = cls(
            group_id=new_id(),
            name=(name or "").strip(),
            description=(description or "").strip(),
            members=unique_in_order(members or []),
            is_active=is_active,
            created_by=created_by,
            created_at=stamp,
            updated_at=stamp
        )
        group.validate()
        return group

    def validate(self) -> None:
        if not self.name:
            raise ValidationError("Invalid group", details={'errors': {'name': "Name is required"}})

    def has_member(self, principal_id: str) -> bool:
        return self.is_active and principal_id in self.members

    def update(self,
               name: Optional[str] = None,
               description: Optional[str] = None,
               members: Optional[List[str]] = None,
               is_active: Optional[bool] = None,
               now: Optional[datetime] = None) -> None:
        if name is not None:
            self.name = name.strip()
        if description is not None:
            self.description = description.strip()
        if members is not None:
            self.members = unique_in_order(members)
        if is_active is not None:
            self.is_active = is_active
        self.validate()
        self.updated_at = now or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'group_id': self.group_id,
            'name': self.name,
            'description': self.description,
            'members': list(self.members),
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': serialize_datetime(self.created_at),
            'updated_at': serialize_datetime(self.updated_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EligibilityGroup':
        return cls(
            group_id=data['group_id'],
            name=data.get('name', ''),
            description=data.get('description') or '',
            members=list(data.get('members') or []),
            is_active=data.get('is_active', True),
            created_by=data.get('created_by'),
            created_at=parse_datetime(data.get('created_at')) or utcnow(),
            updated_at=parse_datetime(data.get('updated_at')) or utcnow()
        )
