"""
Assignment Domain Model Module

An assignment grants principals the right to attempt one test. Principals
are matched through explicit users, role names or eligibility groups, and
the assignment is only usable while active and inside its time window.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from assessly.common.error_handling import ValidationError
from assessly.common.utils import new_id, utcnow, serialize_datetime, parse_datetime, unique_in_order


@dataclass
class Assignment:
    """
    Represents a test assignment.

    Attributes:
        assignment_id: Unique identifier
        test_id: Assigned test
        assigned_by: Principal that created the assignment
        assigned_to_users: Principal ids matched directly
        assigned_to_roles: Role names matched against the principal's roles
        assigned_to_groups: Eligibility group ids matched by current membership
        start_at: Optional start of the validity window
        end_at: Optional end of the validity window
        is_active: Disabled assignments match nobody
    """
    assignment_id: str
    test_id: str
    assigned_by: Optional[str] = None
    assigned_to_users: List[str] = field(default_factory=list)
    assigned_to_roles: List[str] = field(default_factory=list)
    assigned_to_groups: List[str] = field(default_factory=list)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               test_id: str,
               assigned_by: Optional[str] = None,
               assigned_to_users: Optional[List[str]] = None,
               assigned_to_roles: Optional[List[str]] = None,
               assigned_to_groups: Optional[List[str]] = None,
               start_at: Optional[datetime] = None,
               end_at: Optional[datetime] = None,
               is_active: bool = True,
               now: Optional[datetime] = None) -> 'Assignment':
        stamp = now or utcnow()
        assignment = cls(
            assignment_id=new_id(),
            test_id=test_id,
            assigned_by=assigned_by,
            assigned_to_users=unique_in_order(assigned_to_users or []),
            assigned_to_roles=unique_in_order(r.strip() for r in assigned_to_roles or [] if r and r.strip()),
            assigned_to_groups=unique_in_order(assigned_to_groups or []),
            start_at=start_at,
            end_at=end_at,
            is_active=is_active,
            created_at=stamp,
            updated_at=stamp
        )
        assignment.validate()
        return assignment

    def validate(self) -> None:
        if self.start_at and self.end_at and self.end_at <= self.start_at:
            raise ValidationError(
                "Invalid assignment",
                details={'errors': {'end_at': "End must be after start"}}
            )

    def update(self, now: Optional[datetime] = None, **changes: Any) -> None:
        """
        Apply field changes and re-validate.

        Raises:
            ValidationError: If a field is unknown or the window is inverted
        """
        editable = {
            'assigned_to_users', 'assigned_to_roles', 'assigned_to_groups',
            'start_at', 'end_at', 'is_active'
        }
        unknown = set(changes) - editable
        if unknown:
            raise ValidationError("Unknown assignment fields", details={'fields': sorted(unknown)})
        for name, value in changes.items():
            if name.startswith('assigned_to_'):
                value = unique_in_order(value or [])
            setattr(self, name, value)
        self.validate()
        self.updated_at = now or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'assignment_id': self.assignment_id,
            'test_id': self.test_id,
            'assigned_by': self.assigned_by,
            'assigned_to_users': list(self.assigned_to_users),
            'assigned_to_roles': list(self.assigned_to_roles),
            'assigned_to_groups': list(self.assigned_to_groups),
            'start_at': serialize_datetime(self.start_at),
            'end_at': serialize_datetime(self.end_at),
            'is_active': self.is_active,
            'created_at': serialize_datetime(self.created_at),
            'updated_at': serialize_datetime(self.updated_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Assignment':
        return cls(
            assignment_id=data['assignment_id'],
            test_id=data['test_id'],
            assigned_by=data.get('assigned_by'),
            assigned_to_users=list(data.get('assigned_to_users') or []),
            assigned_to_roles=list(data.get('assigned_to_roles') or []),
            assigned_to_groups=list(data.get('assigned_to_groups') or []),
            start_at=parse_datetime(data.get('start_at')),
            end_at=parse_datetime(data.get('end_at')),
            is_active=data.get('is_active', True),
            created_at=parse_datetime(data.get('created_at')) or utcnow(),
            updated_at=parse_datetime(data.get('updated_at')) or utcnow()
        )
