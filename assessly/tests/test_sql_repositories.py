"""
Tests for the SQL repositories over in-memory SQLite.
"""

import random
from contextlib import asynccontextmanager
from dataclasses import replace

import pytest

from assessly.assessments.engine import AttemptEngine
from assessly.common.error_handling import ConflictError, DuplicateError, NotFoundError
from assessly.database.init_db import close_database, get_session_factory, initialize_database
from assessly.domain.attempts import AttemptStatus, TestAttempt
from assessly.domain.groups import EligibilityGroup
from assessly.domain.roles import AccessRole
from assessly.storage import build_sql_repositories
from assessly.tests.helpers import START, answer_key, candidate, descriptive, mcq, seed_test

DATABASE_URL = "sqlite+aiosqlite://"


@asynccontextmanager
async def sql_repositories():
    engine = await initialize_database(DATABASE_URL, create_schema=True)
    try:
        yield build_sql_repositories(get_session_factory(engine))
    finally:
        await close_database()


def _live_attempt(**fields) -> TestAttempt:
    attempt = TestAttempt.create(
        test_id="t1",
        assignment_id="a1",
        user_id="alice",
        attempt_token="secret",
        question_snapshots=[],
        started_at=START,
        duration_minutes=10
    )
    return replace(attempt, **fields)


class TestSqlCatalogue:
    @pytest.mark.asyncio
    async def test_question_crud_and_filters(self):
        async with sql_repositories() as repos:
            first = await repos.questions.create(mcq(topic="math", tags=["algebra"]))
            await repos.questions.create(descriptive(tags=["writing"]))

            fetched = await repos.questions.get(first.question_id)
            assert fetched.to_dict() == first.to_dict()

            assert len(await repos.questions.list({'kind': "MCQ"})) == 1
            assert len(await repos.questions.list({'topic': ""})) == 1
            assert len(await repos.questions.list({'tag': "writing"})) == 1
            assert await repos.questions.count({'tag': "algebra"}) == 1

            fetched.update(text="3 + 3 = ?")
            await repos.questions.update(fetched.question_id, fetched)
            assert (await repos.questions.get(first.question_id)).text == "3 + 3 = ?"

            ids = await repos.questions.existing_ids(["ghost", first.question_id])
            assert ids == [first.question_id]

            assert await repos.questions.delete(first.question_id) is True
            assert await repos.questions.delete(first.question_id) is False
            assert await repos.questions.get(first.question_id) is None

    @pytest.mark.asyncio
    async def test_update_missing_entity(self):
        async with sql_repositories() as repos:
            question = mcq()
            with pytest.raises(NotFoundError):
                await repos.questions.update(question.question_id, question)

    @pytest.mark.asyncio
    async def test_unique_group_and_role_names(self):
        async with sql_repositories() as repos:
            await repos.groups.create(EligibilityGroup.create(name="Cohort", members=["alice"]))
            with pytest.raises(DuplicateError):
                await repos.groups.create(EligibilityGroup.create(name="Cohort"))

            await repos.roles.create(AccessRole.create(name="grader", permissions=["test.evaluate"]))
            with pytest.raises(DuplicateError):
                await repos.roles.create(AccessRole.create(name="grader"))

    @pytest.mark.asyncio
    async def test_group_membership_and_role_permissions(self):
        async with sql_repositories() as repos:
            active = await repos.groups.create(EligibilityGroup.create(name="A", members=["alice"]))
            inactive = await repos.groups.create(
                EligibilityGroup.create(name="B", members=["bob"], is_active=False)
            )
            assert await repos.groups.has_active_member([active.group_id], "alice") is True
            assert await repos.groups.has_active_member([inactive.group_id], "bob") is False
            assert await repos.groups.has_active_member([], "alice") is False

            await repos.roles.create(AccessRole.create(name="grader", permissions=["test.evaluate"]))
            await repos.roles.create(AccessRole.create(name="old", permissions=["test.report"], is_active=False))
            assert await repos.roles.permissions_for(["grader", "old"]) == {"test.evaluate"}


class TestSqlAttempts:
    @pytest.mark.asyncio
    async def test_one_attempt_per_triple(self):
        async with sql_repositories() as repos:
            first = await repos.attempts.create_live(_live_attempt())
            with pytest.raises(DuplicateError):
                await repos.attempts.create_live(_live_attempt())

            await repos.attempts.modify(first.attempt_id, lambda a: a.finish(AttemptStatus.SUBMITTED, START))
            with pytest.raises(DuplicateError):
                await repos.attempts.create_live(_live_attempt())
            await repos.attempts.create_live(_live_attempt(user_id="bob"))

            assert len(await repos.attempts.list_live()) == 1
            assert len(await repos.attempts.list_terminal()) == 1
            completed = await repos.attempts.find_completed("t1", "a1", "alice")
            assert completed.attempt_id == first.attempt_id

    @pytest.mark.asyncio
    async def test_modify_persists_or_rolls_back(self):
        async with sql_repositories() as repos:
            attempt = await repos.attempts.create_live(_live_attempt())

            def reject(current):
                current.score = 99
                raise ConflictError("no")

            with pytest.raises(ConflictError):
                await repos.attempts.modify(attempt.attempt_id, reject)
            assert (await repos.attempts.get(attempt.attempt_id)).score == 0

            updated = await repos.attempts.modify(attempt.attempt_id, lambda a: a.expire(START.replace(hour=23)))
            assert updated.status == AttemptStatus.AUTO_SUBMITTED
            stored = await repos.attempts.get(attempt.attempt_id)
            assert stored.status == AttemptStatus.AUTO_SUBMITTED
            assert stored.submitted_at == START.replace(hour=23)

            with pytest.raises(NotFoundError):
                await repos.attempts.modify("missing", lambda a: None)

    @pytest.mark.asyncio
    async def test_engine_flow(self, clock):
        async with sql_repositories() as repos:
            engine = AttemptEngine(repos, clock=clock, rng=random.Random(3))
            q1, q2 = mcq(marks=1), mcq(marks=2)
            _, assignment = await seed_test(repos, [q1, q2], violation_threshold=2)
            alice = candidate()

            first = await engine.start_attempt(assignment.assignment_id, alice)
            resumed = await engine.start_attempt(assignment.assignment_id, alice)
            assert first.created and not resumed.created
            assert resumed.attempt.attempt_id == first.attempt.attempt_id
            attempt = resumed.attempt

            await engine.log_violation(attempt.attempt_id, alice, attempt.attempt_token, "blur")
            key = answer_key(attempt)
            submitted = await engine.submit_attempt(
                attempt.attempt_id, alice, attempt.attempt_token,
                [{'question_id': q1.question_id, 'selected_option_index': key[q1.question_id]}]
            )
            assert submitted.status == AttemptStatus.SUBMITTED
            assert submitted.score == 1
            assert submitted.max_score == 3

            stored = await repos.attempts.get(attempt.attempt_id)
            assert stored.to_dict() == submitted.to_dict()
            assert [a.attempt_id for a in await engine.list_my_attempts(alice)] == [attempt.attempt_id]
