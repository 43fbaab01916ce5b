"""
Shared builders for the test suite.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from assessly.common.auth import Permission, Principal
from assessly.domain.assignments import Assignment
from assessly.domain.definitions import Test
from assessly.domain.questions import Question, QuestionKind, QuestionOption
from assessly.storage import Repositories

START = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    """Manually advanced naive-UTC clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


def make_principal(principal_id: str, *permissions, roles: Iterable[str] = ()) -> Principal:
    return Principal(
        id=principal_id,
        roles=frozenset(roles),
        permissions=frozenset(p.value if isinstance(p, Permission) else p for p in permissions)
    )


def candidate(principal_id: str = "alice", roles: Iterable[str] = ()) -> Principal:
    return make_principal(principal_id, Permission.TAKE, roles=roles)


def mcq(text: str = "2 + 2 = ?",
        options: Sequence[str] = ("3", "4", "5", "22"),
        correct: int = 1,
        marks: float = 1,
        **fields) -> Question:
    return Question.create(
        kind=QuestionKind.MCQ,
        text=text,
        options=[QuestionOption(text=o, is_correct=i == correct) for i, o in enumerate(options)],
        marks=marks,
        **fields
    )


def descriptive(text: str = "Explain idempotency.", marks: float = 5, **fields) -> Question:
    return Question.create(kind=QuestionKind.DESCRIPTIVE, text=text, marks=marks, **fields)


async def seed_test(
    repositories: Repositories,
    questions: List[Question],
    users: Iterable[str] = ("alice",),
    roles: Iterable[str] = (),
    groups: Iterable[str] = (),
    start_at: Optional[datetime] = None,
    end_at: Optional[datetime] = None,
    **test_fields
) -> Tuple[Test, Assignment]:
    """Store ``questions``, a test over them and one assignment."""
    for question in questions:
        await repositories.questions.create(question)
    test_fields.setdefault('title', "Sample test")
    test_fields.setdefault('duration_minutes', 30)
    test = await repositories.tests.create(Test.create(
        question_ids=[q.question_id for q in questions],
        created_by="author",
        **test_fields
    ))
    assignment = await repositories.assignments.create(Assignment.create(
        test_id=test.test_id,
        assigned_by="manager",
        assigned_to_users=list(users),
        assigned_to_roles=list(roles),
        assigned_to_groups=list(groups),
        start_at=start_at,
        end_at=end_at
    ))
    return test, assignment


def answer_key(attempt) -> dict:
    """question_id -> correct presented index for MCQ snapshots."""
    return {s.question_id: s.correct_option_index for s in attempt.question_snapshots}
