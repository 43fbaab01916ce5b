"""
Tests for assignment eligibility resolution.
"""

from datetime import timedelta

import pytest

from assessly.domain.assignments import Assignment
from assessly.domain.assignments.resolver import AssignmentResolver, is_assignment_active, matches_direct
from assessly.domain.groups import EligibilityGroup, MemoryGroupRepository
from assessly.tests.helpers import START


def test_active_window_is_inclusive_of_bounds():
    assignment = Assignment.create(
        test_id="t1",
        start_at=START,
        end_at=START + timedelta(hours=1)
    )
    assert not is_assignment_active(assignment, START - timedelta(seconds=1))
    assert is_assignment_active(assignment, START)
    assert is_assignment_active(assignment, START + timedelta(hours=1))
    assert not is_assignment_active(assignment, START + timedelta(hours=1, seconds=1))


def test_disabled_assignment_is_never_active():
    assignment = Assignment.create(test_id="t1", is_active=False)
    assert not is_assignment_active(assignment, START)


def test_direct_channels():
    assignment = Assignment.create(test_id="t1", assigned_to_users=["alice"], assigned_to_roles=["student"])
    assert matches_direct(assignment, "alice", [])
    assert matches_direct(assignment, "bob", ["student"])
    assert not matches_direct(assignment, "bob", ["instructor"])


@pytest.mark.asyncio
async def test_group_channel_requires_active_group():
    groups = MemoryGroupRepository()
    group = await groups.create(EligibilityGroup.create(name="Cohort A", members=["carol"]))
    resolver = AssignmentResolver(groups)
    assignment = Assignment.create(test_id="t1", assigned_to_groups=[group.group_id])

    assert await resolver.is_eligible(assignment, "carol", [], START)
    assert not await resolver.is_eligible(assignment, "dave", [], START)

    group.update(is_active=False)
    await groups.update(group.group_id, group)
    assert not await resolver.is_eligible(assignment, "carol", [], START)


@pytest.mark.asyncio
async def test_group_roster_changes_apply_immediately():
    groups = MemoryGroupRepository()
    group = await groups.create(EligibilityGroup.create(name="Cohort B", members=[]))
    resolver = AssignmentResolver(groups)
    assignment = Assignment.create(test_id="t1", assigned_to_groups=[group.group_id])
    assert not await resolver.is_eligible(assignment, "erin", [], START)

    group.update(members=["erin"])
    await groups.update(group.group_id, group)
    assert await resolver.is_eligible(assignment, "erin", [], START)


@pytest.mark.asyncio
async def test_filter_eligible_keeps_order_and_drops_inactive():
    resolver = AssignmentResolver(MemoryGroupRepository())
    first = Assignment.create(test_id="t1", assigned_to_users=["alice"])
    closed = Assignment.create(test_id="t2", assigned_to_users=["alice"], end_at=START - timedelta(days=1))
    other = Assignment.create(test_id="t3", assigned_to_users=["bob"])
    last = Assignment.create(test_id="t4", assigned_to_roles=["student"])

    eligible = await resolver.filter_eligible([first, closed, other, last], "alice", ["student"], START)
    assert [a.test_id for a in eligible] == ["t1", "t4"]
