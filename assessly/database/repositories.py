"""
SQL Repository Implementations

Async SQLAlchemy implementations of the domain repository interfaces. Each
entity is stored as a document row (see ``assessly.database.models``);
filters on indexed columns run in SQL, any others are applied to the
loaded entities.
"""

import enum
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Set, Type

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assessly.common.db.repository import BaseRepository, T, matches_filters, paginate
from assessly.common.error_handling import DatabaseError, DuplicateError, NotFoundError
from assessly.database.base import ModelBase
from assessly.database.models import (
    AssignmentRecord,
    AttemptRecord,
    GroupRecord,
    QuestionRecord,
    RoleRecord,
    TestRecord,
)
from assessly.domain.assignments import Assignment, AssignmentRepository
from assessly.domain.attempts import AttemptMutator, AttemptRepository, AttemptStatus, TestAttempt
from assessly.domain.definitions import Test, TestRepository
from assessly.domain.groups import EligibilityGroup, GroupRepository
from assessly.domain.questions import Question, QuestionRepository
from assessly.domain.questions.memory_repository import question_filters
from assessly.domain.roles import AccessRole, RoleRepository

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


class SqlRepository(BaseRepository[T]):
    """
    Generic document-row repository.

    Subclasses set ``model``, ``entity_class``, ``id_attr`` and ``columns``
    (column name to an extractor reading the value from the entity).
    """

    model: Type[ModelBase]
    entity_class: Any
    id_attr: str
    columns: Dict[str, Callable[[Any], Any]] = {}

    def __init__(self, session_factory: SessionFactory, entity_type: str):
        super().__init__(entity_type)
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, identifier: Any = None) -> AsyncIterator[AsyncSession]:
        """
        Open a session with a transaction, converting storage errors.

        Raises:
            DuplicateError: On a uniqueness violation
            DatabaseError: On any other SQLAlchemy failure
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            raise DuplicateError(self.entity_type, identifier, cause=e) from e
        except SQLAlchemyError as e:
            logger.error(f"{self.entity_type} storage operation failed: {e}")
            raise DatabaseError(f"{self.entity_type} storage operation failed", cause=e) from e

    def _duplicate_key(self, entity: T) -> Any:
        return getattr(entity, self.id_attr)

    def _row_values(self, entity: T) -> Dict[str, Any]:
        values = {
            'id': getattr(entity, self.id_attr),
            'data': entity.to_dict(),
            'created_at': entity.created_at,
            'updated_at': entity.updated_at,
        }
        for column, extract in self.columns.items():
            values[column] = _column_value(extract(entity))
        return values

    def _to_entity(self, row: ModelBase) -> T:
        return self.entity_class.from_dict(row.data)

    def _order_by(self):
        return self.model.created_at.desc()

    def _split_filters(self, filters: Optional[Dict[str, Any]]):
        sql_filters, python_filters = {}, {}
        for key, value in (filters or {}).items():
            if key in self.columns:
                sql_filters[key] = _column_value(value)
            else:
                python_filters[key] = value
        return sql_filters, python_filters

    def _select(self, sql_filters: Dict[str, Any]):
        stmt = select(self.model)
        for key, value in sql_filters.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def _fetch(self, stmt) -> List[T]:
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [self._to_entity(row) for row in result.scalars().all()]

    async def get(self, entity_id: str) -> Optional[T]:
        async with self._transaction() as session:
            row = await session.get(self.model, entity_id)
            return self._to_entity(row) if row is not None else None

    async def create(self, entity: T) -> T:
        async with self._transaction(self._duplicate_key(entity)) as session:
            session.add(self.model(**self._row_values(entity)))
        logger.debug(f"Created {self.entity_type} {getattr(entity, self.id_attr)}")
        return entity

    async def update(self, entity_id: str, entity: T) -> T:
        async with self._transaction(self._duplicate_key(entity)) as session:
            row = await session.get(self.model, entity_id)
            if row is None:
                raise NotFoundError(self.entity_type, entity_id)
            row.update(self._row_values(entity))
        return entity

    async def delete(self, entity_id: str) -> bool:
        async with self._transaction() as session:
            row = await session.get(self.model, entity_id)
            if row is None:
                return False
            await session.delete(row)
            return True

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[T]:
        sql_filters, python_filters = self._split_filters(filters)
        stmt = self._select(sql_filters).order_by(self._order_by())
        if python_filters:
            entities = [e for e in await self._fetch(stmt) if matches_filters(e, python_filters)]
            return paginate(entities, limit, offset)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch(stmt)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        sql_filters, python_filters = self._split_filters(filters)
        if python_filters:
            return len(await self.list(filters))
        stmt = select(func.count()).select_from(self.model)
        for key, value in sql_filters.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        async with self._transaction() as session:
            return (await session.execute(stmt)).scalar_one()


class SqlQuestionRepository(SqlRepository[Question], QuestionRepository):
    model = QuestionRecord
    entity_class = Question
    id_attr = "question_id"
    columns = {
        'kind': lambda q: q.kind,
        'difficulty': lambda q: q.difficulty,
        'topic': lambda q: q.topic,
        'created_by': lambda q: q.created_by,
    }

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory, "Question")

    async def find_by_ids(self, question_ids: Iterable[str]) -> List[Question]:
        question_ids = list(question_ids)
        if not question_ids:
            return []
        found = {
            question.question_id: question
            for question in await self._fetch(select(QuestionRecord).where(QuestionRecord.id.in_(question_ids)))
        }
        return [found[question_id] for question_id in question_ids if question_id in found]

    async def list(self, filters=None, limit=None, offset=0) -> List[Question]:
        return await super().list(question_filters(filters), limit, offset)

    async def count(self, filters=None) -> int:
        return await super().count(question_filters(filters))


class SqlTestRepository(SqlRepository[Test], TestRepository):
    __test__ = False

    model = TestRecord
    entity_class = Test
    id_attr = "test_id"
    columns = {'created_by': lambda t: t.created_by}

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory, "Test")


class SqlGroupRepository(SqlRepository[EligibilityGroup], GroupRepository):
    model = GroupRecord
    entity_class = EligibilityGroup
    id_attr = "group_id"
    columns = {'name': lambda g: g.name, 'is_active': lambda g: g.is_active}

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory, "EligibilityGroup")

    def _duplicate_key(self, entity: EligibilityGroup) -> Any:
        return entity.name

    async def get_by_name(self, name: str) -> Optional[EligibilityGroup]:
        groups = await self._fetch(select(GroupRecord).where(GroupRecord.name == name))
        return groups[0] if groups else None

    async def has_active_member(self, group_ids: Iterable[str], principal_id: str) -> bool:
        group_ids = list(group_ids)
        if not group_ids:
            return False
        stmt = select(GroupRecord).where(GroupRecord.id.in_(group_ids), GroupRecord.is_active.is_(True))
        return any(group.has_member(principal_id) for group in await self._fetch(stmt))


class SqlRoleRepository(SqlRepository[AccessRole], RoleRepository):
    model = RoleRecord
    entity_class = AccessRole
    id_attr = "role_id"
    columns = {'name': lambda r: r.name, 'is_active': lambda r: r.is_active}

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory, "AccessRole")

    def _duplicate_key(self, entity: AccessRole) -> Any:
        return entity.name

    def _order_by(self):
        return RoleRecord.name.asc()

    async def get_by_name(self, name: str) -> Optional[AccessRole]:
        roles = await self._fetch(select(RoleRecord).where(RoleRecord.name == name))
        return roles[0] if roles else None

    async def permissions_for(self, role_names: Iterable[str]) -> Set[str]:
        role_names = list(role_names)
        if not role_names:
            return set()
        stmt = select(RoleRecord).where(RoleRecord.name.in_(role_names), RoleRecord.is_active.is_(True))
        permissions: Set[str] = set()
        for role in await self._fetch(stmt):
            permissions.update(role.permissions)
        return permissions


class SqlAssignmentRepository(SqlRepository[Assignment], AssignmentRepository):
    model = AssignmentRecord
    entity_class = Assignment
    id_attr = "assignment_id"
    columns = {'test_id': lambda a: a.test_id, 'is_active': lambda a: a.is_active}

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory, "Assignment")


class SqlAttemptRepository(SqlRepository[TestAttempt], AttemptRepository):
    """
    Attempt storage.

    The unique index ``uq_test_attempts_triple`` backs ``create_live``;
    ``modify`` locks the row with ``SELECT ... FOR UPDATE`` where the
    database supports it.
    """

    model = AttemptRecord
    entity_class = TestAttempt
    id_attr = "attempt_id"
    columns = {
        'test_id': lambda a: a.test_id,
        'assignment_id': lambda a: a.assignment_id,
        'user_id': lambda a: a.user_id,
        'status': lambda a: a.status,
    }

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory, "TestAttempt")

    def _duplicate_key(self, entity: TestAttempt) -> Any:
        return f"{entity.test_id}/{entity.assignment_id}/{entity.user_id}"

    def _triple(self, test_id: str, assignment_id: str, user_id: str):
        return select(AttemptRecord).where(
            AttemptRecord.test_id == test_id,
            AttemptRecord.assignment_id == assignment_id,
            AttemptRecord.user_id == user_id,
        )

    async def find_live(self, test_id: str, assignment_id: str, user_id: str) -> Optional[TestAttempt]:
        stmt = self._triple(test_id, assignment_id, user_id).where(
            AttemptRecord.status == AttemptStatus.IN_PROGRESS.value
        )
        attempts = await self._fetch(stmt)
        return attempts[0] if attempts else None

    async def find_completed(self, test_id: str, assignment_id: str, user_id: str) -> Optional[TestAttempt]:
        stmt = self._triple(test_id, assignment_id, user_id).where(
            AttemptRecord.status != AttemptStatus.IN_PROGRESS.value
        ).order_by(AttemptRecord.created_at.desc()).limit(1)
        attempts = await self._fetch(stmt)
        return attempts[0] if attempts else None

    async def create_live(self, attempt: TestAttempt) -> TestAttempt:
        return await self.create(attempt)

    async def modify(self, attempt_id: str, mutator: AttemptMutator) -> TestAttempt:
        async with self._transaction(attempt_id) as session:
            row = await session.get(AttemptRecord, attempt_id, with_for_update=True)
            if row is None:
                raise NotFoundError(self.entity_type, attempt_id)
            attempt = self._to_entity(row)
            mutator(attempt)
            row.update(self._row_values(attempt))
        return attempt

    async def list_by_user(self, user_id: str) -> List[TestAttempt]:
        return await self.list({'user_id': user_id})

    async def list_terminal(self) -> List[TestAttempt]:
        stmt = select(AttemptRecord).where(
            AttemptRecord.status != AttemptStatus.IN_PROGRESS.value
        ).order_by(self._order_by())
        return await self._fetch(stmt)

    async def list_live(self) -> List[TestAttempt]:
        return await self.list({'status': AttemptStatus.IN_PROGRESS})
