"""
Permission vocabulary for the assessment engine.

Every protected operation names one or more of these strings. A principal
holds a permission either directly (token claim) or through an access role.
"""

import enum
from typing import List


class Permission(str, enum.Enum):
    """Fixed set of permission strings understood by the API."""

    CREATE = "test.create"
    ASSIGN = "test.assign"
    TAKE = "test.take"
    EVALUATE = "test.evaluate"
    REPORT = "test.report"
    MANAGE_GROUPS = "test.manage_groups"
    MANAGE_ROLES = "test.manage_roles"


PERMISSIONS: List[str] = [permission.value for permission in Permission]


def is_known_permission(value: str) -> bool:
    return value in PERMISSIONS
