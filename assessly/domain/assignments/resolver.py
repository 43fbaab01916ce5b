"""
Assignment Resolver Module

Decides whether an assignment is currently usable and whether it targets a
given principal. The checks are pure functions; only the group channel needs
a store lookup, so it runs last and only when the cheaper channels fail.
"""

import logging
from datetime import datetime
from typing import Iterable, List

from assessly.domain.groups.repository import GroupRepository
from .model import Assignment

logger = logging.getLogger(__name__)


def is_assignment_active(assignment: Assignment, now: datetime) -> bool:
    """
    Check the assignment's own activity flag and time window.

    Args:
        assignment: Assignment to check
        now: Current time (naive UTC)

    Returns:
        False when disabled, before ``start_at`` or after ``end_at``
    """
    if not assignment.is_active:
        return False
    if assignment.start_at and now < assignment.start_at:
        return False
    if assignment.end_at and now > assignment.end_at:
        return False
    return True


def matches_user(assignment: Assignment, principal_id: str) -> bool:
    return principal_id in assignment.assigned_to_users


def matches_roles(assignment: Assignment, role_names: Iterable[str]) -> bool:
    return any(role in assignment.assigned_to_roles for role in role_names)


def matches_direct(assignment: Assignment, principal_id: str, role_names: Iterable[str]) -> bool:
    """Match through the user and role channels, in that order."""
    return matches_user(assignment, principal_id) or matches_roles(assignment, role_names)


class AssignmentResolver:
    """
    Resolves assignment eligibility for principals.

    Group membership is read from the group store on every call so roster
    and activity changes take effect immediately.
    """

    def __init__(self, groups: GroupRepository):
        self.groups = groups

    async def matches(self, assignment: Assignment, principal_id: str, role_names: Iterable[str]) -> bool:
        """
        Check whether any channel of ``assignment`` targets the principal.

        Args:
            assignment: Assignment to check
            principal_id: Principal id
            role_names: Role names held by the principal

        Returns:
            True if matched by user, role or active group membership
        """
        if matches_direct(assignment, principal_id, role_names):
            return True
        if assignment.assigned_to_groups:
            return await self.groups.has_active_member(assignment.assigned_to_groups, principal_id)
        return False

    async def is_eligible(
        self,
        assignment: Assignment,
        principal_id: str,
        role_names: Iterable[str],
        now: datetime
    ) -> bool:
        return is_assignment_active(assignment, now) and await self.matches(assignment, principal_id, role_names)

    async def filter_eligible(
        self,
        assignments: Iterable[Assignment],
        principal_id: str,
        role_names: Iterable[str],
        now: datetime
    ) -> List[Assignment]:
        """
        Keep the assignments currently usable by the principal, preserving order.
        """
        role_names = list(role_names)
        eligible = []
        for assignment in assignments:
            if await self.is_eligible(assignment, principal_id, role_names, now):
                eligible.append(assignment)
        logger.debug(f"{len(eligible)} eligible assignments for principal {principal_id}")
        return eligible
