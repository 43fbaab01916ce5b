"""
Tests for the catalogue services.
"""

from datetime import timedelta

import pytest

from assessly.assessments.services import (
    AssignmentService,
    GroupService,
    QuestionService,
    RoleService,
    TestService,
)
from assessly.common.auth import Permission
from assessly.common.error_handling import DuplicateError, NotFoundError, ValidationError
from assessly.domain.assignments import AssignmentResolver
from assessly.tests.helpers import START, candidate, make_principal, mcq, seed_test

AUTHOR = make_principal("author", Permission.CREATE)
MANAGER = make_principal("manager", Permission.ASSIGN)


@pytest.fixture
def question_service(repositories, clock):
    return QuestionService(repositories, clock)


@pytest.fixture
def definitions(repositories, clock):
    return TestService(repositories, clock)


@pytest.fixture
def assignment_service(repositories, clock):
    return AssignmentService(repositories, AssignmentResolver(repositories.groups), clock)


def _options(correct=0):
    return [{'text': text, 'is_correct': i == correct} for i, text in enumerate(("yes", "no"))]


class TestQuestionService:
    @pytest.mark.asyncio
    async def test_filters(self, question_service):
        await question_service.create_question(AUTHOR, kind="MCQ", text="a", options=_options(),
                                               topic="math", tags=["algebra"], difficulty="Easy")
        await question_service.create_question(AUTHOR, kind="MCQ", text="b", options=_options(),
                                               tags=["algebra", "basics"])
        await question_service.create_question(AUTHOR, kind="DESCRIPTIVE", text="c", topic="math")

        assert len(await question_service.list_questions()) == 3
        assert len(await question_service.list_questions(topic="math")) == 2
        assert [q.text for q in await question_service.list_questions(topic="__uncategorized__")] == ["b"]
        assert len(await question_service.list_questions(tag="algebra")) == 2
        assert [q.text for q in await question_service.list_questions(kind="DESCRIPTIVE")] == ["c"]
        assert [q.text for q in await question_service.list_questions(difficulty="Easy")] == ["a"]

    @pytest.mark.asyncio
    async def test_create_validates(self, question_service):
        with pytest.raises(ValidationError):
            await question_service.create_question(AUTHOR, kind="MCQ", text="a",
                                                   options=[{'text': "x", 'is_correct': False}])

    @pytest.mark.asyncio
    async def test_update_and_delete(self, question_service):
        question = await question_service.create_question(AUTHOR, kind="MCQ", text="a", options=_options())
        updated = await question_service.update_question(question.question_id, text="b", options=_options(1))
        assert updated.text == "b"
        assert updated.correct_option_index == 1

        await question_service.delete_question(question.question_id)
        with pytest.raises(NotFoundError):
            await question_service.get_question(question.question_id)
        with pytest.raises(NotFoundError):
            await question_service.delete_question(question.question_id)

    @pytest.mark.asyncio
    async def test_timestamps_follow_the_service_clock(self, question_service, clock):
        question = await question_service.create_question(AUTHOR, kind="MCQ", text="a", options=_options())
        assert question.created_at == question.updated_at == START

        clock.advance(minutes=10)
        updated = await question_service.update_question(question.question_id, text="b")
        assert updated.created_at == START
        assert updated.updated_at == START + timedelta(minutes=10)


class TestTestService:
    @pytest.mark.asyncio
    async def test_unknown_question_ids_are_pruned(self, repositories, definitions):
        question = await repositories.questions.create(mcq())
        test = await definitions.create_test(
            AUTHOR, title="Quiz", duration_minutes=10,
            question_ids=[question.question_id, "ghost", question.question_id]
        )
        assert test.question_ids == [question.question_id]

        updated = await definitions.update_test(test.test_id, AUTHOR, question_ids=["ghost"], title="Quiz 2")
        assert updated.question_ids == []
        assert updated.title == "Quiz 2"
        assert updated.updated_by == "author"
        assert updated.updated_at == START

    @pytest.mark.asyncio
    async def test_get_with_questions(self, repositories, definitions):
        question = await repositories.questions.create(mcq())
        test = await definitions.create_test(AUTHOR, title="Quiz", duration_minutes=10,
                                              question_ids=[question.question_id])
        _, questions = await definitions.get_test_with_questions(test.test_id)
        assert [q.question_id for q in questions] == [question.question_id]

    @pytest.mark.asyncio
    async def test_visibility(self, definitions):
        other = make_principal("other", Permission.CREATE)
        await definitions.create_test(AUTHOR, title="Mine", duration_minutes=10)
        await definitions.create_test(other, title="Theirs", duration_minutes=10)

        assert [t.title for t in await definitions.list_tests(AUTHOR)] == ["Mine"]
        assert len(await definitions.list_tests(MANAGER)) == 2
        assert len(await definitions.list_tests(make_principal("viewer", Permission.REPORT))) == 2

    @pytest.mark.asyncio
    async def test_invalid_schedule(self, definitions):
        with pytest.raises(ValidationError):
            await definitions.create_test(AUTHOR, title="Quiz", duration_minutes=10,
                                           schedule_start=START, schedule_end=START)


class TestGroupsAndRoles:
    @pytest.mark.asyncio
    async def test_duplicate_group_name(self, repositories):
        service = GroupService(repositories)
        await service.create_group(AUTHOR, name="Cohort A", members=["alice"])
        with pytest.raises(DuplicateError):
            await service.create_group(AUTHOR, name="Cohort A")

    @pytest.mark.asyncio
    async def test_group_update(self, repositories):
        service = GroupService(repositories)
        group = await service.create_group(AUTHOR, name="Cohort A", members=["alice", "alice", "bob"])
        assert group.members == ["alice", "bob"]
        updated = await service.update_group(group.group_id, is_active=False)
        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_role_timestamps_follow_the_service_clock(self, repositories, clock):
        service = RoleService(repositories, clock)
        role = await service.create_role(AUTHOR, name="grader", permissions=["test.evaluate"])
        clock.advance(hours=1)
        updated = await service.update_role(role.role_id, description="Marks essays")
        assert (updated.created_at, updated.updated_at) == (START, START + timedelta(hours=1))

    @pytest.mark.asyncio
    async def test_duplicate_role_name(self, repositories):
        service = RoleService(repositories)
        await service.create_role(AUTHOR, name="grader", permissions=[Permission.EVALUATE.value])
        with pytest.raises(DuplicateError):
            await service.create_role(AUTHOR, name="grader")

    @pytest.mark.asyncio
    async def test_unknown_permission(self, repositories):
        with pytest.raises(ValidationError):
            await RoleService(repositories).create_role(AUTHOR, name="odd", permissions=["test.fly"])

    def test_vocabulary(self):
        assert Permission.TAKE.value in RoleService.permission_vocabulary()


class TestAssignmentService:
    @pytest.mark.asyncio
    async def test_missing_test(self, assignment_service):
        with pytest.raises(NotFoundError):
            await assignment_service.create_assignment(MANAGER, "ghost", assigned_to_users=["alice"])

    @pytest.mark.asyncio
    async def test_list_by_test(self, repositories, assignment_service):
        test, _ = await seed_test(repositories, [mcq()])
        await assignment_service.create_assignment(MANAGER, test.test_id, assigned_to_roles=["student"])
        await seed_test(repositories, [mcq()])

        assert len(await assignment_service.list_assignments()) == 3
        assert len(await assignment_service.list_assignments(test_id=test.test_id)) == 2

    @pytest.mark.asyncio
    async def test_list_eligible(self, repositories, assignment_service):
        test, open_assignment = await seed_test(repositories, [mcq()])
        _, for_bob = await seed_test(repositories, [mcq()], users=["bob"])
        deleted, orphan = await seed_test(repositories, [mcq()])
        await repositories.tests.delete(deleted.test_id)
        inactive = await assignment_service.create_assignment(MANAGER, test.test_id, assigned_to_users=["alice"])
        await assignment_service.update_assignment(inactive.assignment_id, is_active=False)

        eligible = await assignment_service.list_eligible(candidate())
        assert [(a.assignment_id, t.test_id) for a, t in eligible] == [(open_assignment.assignment_id, test.test_id)]
