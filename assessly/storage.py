"""
Repository wiring.

Bundles one repository per entity so services receive a single object, and
builds the bundle for either storage backend.
"""

from dataclasses import dataclass

from assessly.database.repositories import (
    SqlAssignmentRepository,
    SqlAttemptRepository,
    SqlGroupRepository,
    SqlQuestionRepository,
    SqlRoleRepository,
    SqlTestRepository,
)
from assessly.domain.assignments import AssignmentRepository, MemoryAssignmentRepository
from assessly.domain.attempts import AttemptRepository, MemoryAttemptRepository
from assessly.domain.definitions import MemoryTestRepository, TestRepository
from assessly.domain.groups import GroupRepository, MemoryGroupRepository
from assessly.domain.questions import MemoryQuestionRepository, QuestionRepository
from assessly.domain.roles import MemoryRoleRepository, RoleRepository


@dataclass
class Repositories:
    """One repository per stored entity."""
    questions: QuestionRepository
    tests: TestRepository
    groups: GroupRepository
    assignments: AssignmentRepository
    attempts: AttemptRepository
    roles: RoleRepository


def build_memory_repositories() -> Repositories:
    """Create empty in-memory repositories."""
    return Repositories(
        questions=MemoryQuestionRepository(),
        tests=MemoryTestRepository(),
        groups=MemoryGroupRepository(),
        assignments=MemoryAssignmentRepository(),
        attempts=MemoryAttemptRepository(),
        roles=MemoryRoleRepository(),
    )


def build_sql_repositories(session_factory) -> Repositories:
    """
    Create SQL repositories sharing one session factory.

    Args:
        session_factory: Callable returning an ``AsyncSession``
    """
    return Repositories(
        questions=SqlQuestionRepository(session_factory),
        tests=SqlTestRepository(session_factory),
        groups=SqlGroupRepository(session_factory),
        assignments=SqlAssignmentRepository(session_factory),
        attempts=SqlAttemptRepository(session_factory),
        roles=SqlRoleRepository(session_factory),
    )
