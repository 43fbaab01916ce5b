"""
Catalogue Services

Business logic for the question bank, test definitions, eligibility
groups, access roles and assignments. Services raise application errors
and never touch the web layer.
"""

from typing import Any, Dict, List, Optional, Tuple

from assessly.common.auth.permissions import PERMISSIONS, Permission
from assessly.common.auth.principal import Principal
from assessly.common.error_handling import DuplicateError, NotFoundError
from assessly.common.logger import get_logger
from assessly.common.utils import utcnow
from assessly.domain.assignments import Assignment, AssignmentResolver
from assessly.domain.definitions import Test
from assessly.domain.groups import EligibilityGroup
from assessly.domain.questions import Question, QuestionOption, UNCATEGORIZED_TOPIC
from assessly.domain.roles import AccessRole
from assessly.storage import Repositories
from assessly.assessments.engine import Clock

logger = get_logger("assessments.services")


def _options(options: Optional[List[Dict[str, Any]]]) -> Optional[List[QuestionOption]]:
    if options is None:
        return None
    return [QuestionOption.from_dict(option) for option in options]


class QuestionService:
    """Question bank management."""

    def __init__(self, repositories: Repositories, clock: Clock = utcnow):
        self.questions = repositories.questions
        self.clock = clock

    async def list_questions(
        self,
        kind: Optional[str] = None,
        difficulty: Optional[str] = None,
        topic: Optional[str] = None,
        tag: Optional[str] = None
    ) -> List[Question]:
        """
        List questions, newest first.

        Args:
            kind: Only this kind
            difficulty: Only this difficulty
            topic: Only this topic; ``__uncategorized__`` selects questions without one
            tag: Only questions carrying this tag
        """
        filters: Dict[str, Any] = {}
        if kind:
            filters['kind'] = kind
        if difficulty:
            filters['difficulty'] = difficulty
        if topic:
            filters['topic'] = "" if topic == UNCATEGORIZED_TOPIC else topic
        if tag:
            filters['tag'] = tag
        return await self.questions.list(filters)

    async def get_question(self, question_id: str) -> Question:
        question = await self.questions.get(question_id)
        if question is None:
            raise NotFoundError("Question", question_id)
        return question

    async def create_question(self, principal: Principal, **fields: Any) -> Question:
        fields['options'] = _options(fields.get('options'))
        question = Question.create(created_by=principal.id, now=self.clock(), **fields)
        question = await self.questions.create(question)
        logger.info(f"Question {question.question_id} created by {principal.id}")
        return question

    async def update_question(self, question_id: str, **changes: Any) -> Question:
        question = await self.get_question(question_id)
        if 'options' in changes:
            changes['options'] = _options(changes['options'])
        question.update(now=self.clock(), **changes)
        return await self.questions.update(question_id, question)

    async def delete_question(self, question_id: str) -> None:
        if not await self.questions.delete(question_id):
            raise NotFoundError("Question", question_id)
        logger.info(f"Question {question_id} deleted")


class TestService:
    """
    Test definition management.

    Question references are pruned to existing questions whenever they are saved.
    """
    __test__ = False

    def __init__(self, repositories: Repositories, clock: Clock = utcnow):
        self.tests = repositories.tests
        self.questions = repositories.questions
        self.clock = clock

    async def list_tests(self, principal: Principal) -> List[Test]:
        """All tests for report and assignment managers, otherwise the caller's own."""
        if principal.has_any([Permission.REPORT, Permission.ASSIGN]):
            return await self.tests.list()
        return await self.tests.list({'created_by': principal.id})

    async def get_test(self, test_id: str) -> Test:
        test = await self.tests.get(test_id)
        if test is None:
            raise NotFoundError("Test", test_id)
        return test

    async def get_test_with_questions(self, test_id: str) -> Tuple[Test, List[Question]]:
        test = await self.get_test(test_id)
        return test, await self.questions.find_by_ids(test.question_ids)

    async def create_test(self, principal: Principal, question_ids: Optional[List[str]] = None, **fields: Any) -> Test:
        existing = await self.questions.existing_ids(question_ids or [])
        test = Test.create(question_ids=existing, created_by=principal.id, now=self.clock(), **fields)
        test = await self.tests.create(test)
        logger.info(f"Test {test.test_id} created by {principal.id} with {len(existing)} questions")
        return test

    async def update_test(self, test_id: str, principal: Principal, **changes: Any) -> Test:
        test = await self.get_test(test_id)
        if changes.get('question_ids') is not None:
            changes['question_ids'] = await self.questions.existing_ids(changes['question_ids'])
        test.update(updated_by=principal.id, now=self.clock(), **changes)
        return await self.tests.update(test_id, test)

    async def delete_test(self, test_id: str) -> None:
        if not await self.tests.delete(test_id):
            raise NotFoundError("Test", test_id)
        logger.info(f"Test {test_id} deleted")


class GroupService:
    """Eligibility group management."""

    def __init__(self, repositories: Repositories, clock: Clock = utcnow):
        self.groups = repositories.groups
        self.clock = clock

    async def list_groups(self) -> List[EligibilityGroup]:
        return await self.groups.list()

    async def get_group(self, group_id: str) -> EligibilityGroup:
        group = await self.groups.get(group_id)
        if group is None:
            raise NotFoundError("EligibilityGroup", group_id)
        return group

    async def create_group(self, principal: Principal, **fields: Any) -> EligibilityGroup:
        group = EligibilityGroup.create(created_by=principal.id, now=self.clock(), **fields)
        if await self.groups.get_by_name(group.name) is not None:
            raise DuplicateError("EligibilityGroup", group.name)
        return await self.groups.create(group)

    async def update_group(self, group_id: str, **changes: Any) -> EligibilityGroup:
        group = await self.get_group(group_id)
        group.update(now=self.clock(), **changes)
        return await self.groups.update(group_id, group)

    async def delete_group(self, group_id: str) -> None:
        if not await self.groups.delete(group_id):
            raise NotFoundError("EligibilityGroup", group_id)


class RoleService:
    """Access role management."""

    def __init__(self, repositories: Repositories, clock: Clock = utcnow):
        self.roles = repositories.roles
        self.clock = clock

    @staticmethod
    def permission_vocabulary() -> List[str]:
        return list(PERMISSIONS)

    async def list_roles(self) -> List[AccessRole]:
        return await self.roles.list()

    async def get_role(self, role_id: str) -> AccessRole:
        role = await self.roles.get(role_id)
        if role is None:
            raise NotFoundError("AccessRole", role_id)
        return role

    async def create_role(self, principal: Principal, **fields: Any) -> AccessRole:
        role = AccessRole.create(created_by=principal.id, now=self.clock(), **fields)
        if await self.roles.get_by_name(role.name) is not None:
            raise DuplicateError("AccessRole", role.name)
        return await self.roles.create(role)

    async def update_role(self, role_id: str, **changes: Any) -> AccessRole:
        role = await self.get_role(role_id)
        role.update(now=self.clock(), **changes)
        return await self.roles.update(role_id, role)

    async def delete_role(self, role_id: str) -> None:
        if not await self.roles.delete(role_id):
            raise NotFoundError("AccessRole", role_id)


class AssignmentService:
    """Assignment management and the caller's eligible-assignment listing."""

    def __init__(self, repositories: Repositories, resolver: AssignmentResolver, clock: Clock):
        self.assignments = repositories.assignments
        self.tests = repositories.tests
        self.resolver = resolver
        self.clock = clock

    async def list_assignments(self, test_id: Optional[str] = None) -> List[Assignment]:
        return await self.assignments.list({'test_id': test_id} if test_id else None)

    async def get_assignment(self, assignment_id: str) -> Assignment:
        assignment = await self.assignments.get(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    async def create_assignment(self, principal: Principal, test_id: str, **fields: Any) -> Assignment:
        if await self.tests.get(test_id) is None:
            raise NotFoundError("Test", test_id)
        assignment = Assignment.create(test_id=test_id, assigned_by=principal.id, now=self.clock(), **fields)
        assignment = await self.assignments.create(assignment)
        logger.info(f"Assignment {assignment.assignment_id} for test {test_id} created by {principal.id}")
        return assignment

    async def update_assignment(self, assignment_id: str, **changes: Any) -> Assignment:
        assignment = await self.get_assignment(assignment_id)
        assignment.update(now=self.clock(), **changes)
        return await self.assignments.update(assignment_id, assignment)

    async def delete_assignment(self, assignment_id: str) -> None:
        if not await self.assignments.delete(assignment_id):
            raise NotFoundError("Assignment", assignment_id)

    async def list_eligible(self, principal: Principal) -> List[Tuple[Assignment, Test]]:
        """
        Assignments the caller can start right now, with their tests.

        Assignments whose test has been deleted are left out.
        """
        active = await self.assignments.list({'is_active': True})
        eligible = await self.resolver.filter_eligible(active, principal.id, principal.roles, self.clock())
        result = []
        for assignment in eligible:
            test = await self.tests.get(assignment.test_id)
            if test is not None:
                result.append((assignment, test))
        return result
