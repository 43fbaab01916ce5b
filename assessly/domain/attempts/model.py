"""
Test Attempt Domain Model Module

This module defines the attempt aggregate: one principal's timed run at a
test under one assignment. It holds the frozen question snapshot, the
answer set, the violation log and the score, and owns the status
transitions between ``in_progress`` and the two terminal states.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from assessly.common.utils import new_id, utcnow, serialize_datetime, parse_datetime
from assessly.domain.questions.model import QuestionKind


class AttemptStatus(str, enum.Enum):
    """Lifecycle states of an attempt."""
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto_submitted"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.IN_PROGRESS


TERMINAL_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.AUTO_SUBMITTED)


@dataclass
class QuestionSnapshot:
    """
    Frozen copy of one question as presented in an attempt.

    ``options`` holds option texts in presentation order and
    ``correct_option_index`` points into that order. The index never leaves
    the server while the attempt can still be answered.
    """
    question_id: str
    kind: QuestionKind
    text: str
    options: List[str] = field(default_factory=list)
    marks: float = 1
    correct_option_index: Optional[int] = None

    def to_dict(self, include_key: bool = True) -> Dict[str, Any]:
        data = {
            'question_id': self.question_id,
            'kind': self.kind.value,
            'text': self.text,
            'options': list(self.options),
            'marks': self.marks
        }
        if include_key:
            data['correct_option_index'] = self.correct_option_index
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuestionSnapshot':
        return cls(
            question_id=data['question_id'],
            kind=QuestionKind(data['kind']),
            text=data.get('text', ''),
            options=list(data.get('options') or []),
            marks=data.get('marks', 1),
            correct_option_index=data.get('correct_option_index')
        )


@dataclass
class AttemptAnswer:
    """One stored answer and its grading state."""
    question_id: str
    kind: QuestionKind
    selected_option_index: Optional[int] = None
    answer_text: str = ""
    is_correct: Optional[bool] = None
    marks_awarded: float = 0
    feedback: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'question_id': self.question_id,
            'kind': self.kind.value,
            'selected_option_index': self.selected_option_index,
            'answer_text': self.answer_text,
            'is_correct': self.is_correct,
            'marks_awarded': self.marks_awarded,
            'feedback': self.feedback
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttemptAnswer':
        return cls(
            question_id=data['question_id'],
            kind=QuestionKind(data['kind']),
            selected_option_index=data.get('selected_option_index'),
            answer_text=data.get('answer_text') or '',
            is_correct=data.get('is_correct'),
            marks_awarded=data.get('marks_awarded', 0),
            feedback=data.get('feedback') or ''
        )


@dataclass
class Violation:
    """A client-reported proctoring event."""
    type: str
    timestamp: datetime = field(default_factory=utcnow)
    ip_address: str = ""
    user_agent: str = ""
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'timestamp': serialize_datetime(self.timestamp),
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'details': self.details
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Violation':
        return cls(
            type=data['type'],
            timestamp=parse_datetime(data.get('timestamp')) or utcnow(),
            ip_address=data.get('ip_address') or '',
            user_agent=data.get('user_agent') or '',
            details=data.get('details') or ''
        )


@dataclass
class TestAttempt:
    """
    Represents one attempt at a test.

    Attributes:
        attempt_id: Unique identifier
        test_id: Test being taken
        assignment_id: Assignment the attempt was started under
        user_id: Principal taking the test
        attempt_token: Secret issued at creation, required for submit and violations
        status: Lifecycle state
        started_at: Creation time
        expires_at: started_at plus the test duration
        submitted_at: When a terminal state was reached
        question_snapshots: Frozen questions in presentation order
        answers: Submitted answers
        violations: Append-only violation log
        score: Sum of marks awarded
        max_score: Sum of snapshot marks
        evaluated_by: Evaluator of the last manual evaluation
        evaluation_notes: Evaluator notes
    """
    __test__ = False

    attempt_id: str
    test_id: str
    assignment_id: str
    user_id: str
    attempt_token: str
    expires_at: datetime
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    started_at: datetime = field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None
    question_snapshots: List[QuestionSnapshot] = field(default_factory=list)
    answers: List[AttemptAnswer] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)
    score: float = 0
    max_score: float = 0
    evaluated_by: Optional[str] = None
    evaluation_notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               test_id: str,
               assignment_id: str,
               user_id: str,
               attempt_token: str,
               question_snapshots: List[QuestionSnapshot],
               started_at: datetime,
               duration_minutes: int) -> 'TestAttempt':
        """
        Create a new live attempt over an already built snapshot.
        """
        return cls(
            attempt_id=new_id(),
            test_id=test_id,
            assignment_id=assignment_id,
            user_id=user_id,
            attempt_token=attempt_token,
            started_at=started_at,
            expires_at=started_at + timedelta(minutes=duration_minutes),
            question_snapshots=list(question_snapshots),
            max_score=sum(snapshot.marks or 0 for snapshot in question_snapshots),
            created_at=started_at,
            updated_at=started_at
        )

    @property
    def is_live(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return not self.is_live

    def is_expired(self, now: datetime) -> bool:
        """Live and past its deadline."""
        return self.is_live and now > self.expires_at

    def snapshot_for(self, question_id: str) -> Optional[QuestionSnapshot]:
        for snapshot in self.question_snapshots:
            if snapshot.question_id == question_id:
                return snapshot
        return None

    def finish(self, status: AttemptStatus, now: datetime) -> None:
        """
        Move a live attempt into a terminal state and score it.

        Raises:
            ValueError: If the attempt is already terminal or ``status`` is not terminal
        """
        if not self.is_live:
            raise ValueError(f"Attempt {self.attempt_id} is already {self.status.value}")
        if not status.is_terminal:
            raise ValueError("finish() needs a terminal status")
        self.status = status
        self.submitted_at = now
        self.updated_at = now
        self.rescore()

    def rescore(self) -> float:
        """
        Grade the stored answers against the frozen snapshot.

        MCQ answers are correct when the selected index equals the snapshot
        key. Descriptive answers keep the marks an evaluator gave them.
        Recomputing over unchanged answers always yields the same score.

        Returns:
            The new score
        """
        score = 0
        for answer in self.answers:
            if answer.kind == QuestionKind.MCQ:
                snapshot = self.snapshot_for(answer.question_id)
                if snapshot is not None and answer.selected_option_index is not None:
                    answer.is_correct = answer.selected_option_index == snapshot.correct_option_index
                    answer.marks_awarded = snapshot.marks if answer.is_correct else 0
            score += answer.marks_awarded or 0
        self.score = score
        return score

    def expire(self, now: datetime) -> bool:
        """
        Apply the deadline: a live attempt past ``expires_at`` becomes
        ``auto_submitted`` with whatever answers are stored.

        Returns:
            True if the attempt transitioned
        """
        if not self.is_expired(now):
            return False
        self.finish(AttemptStatus.AUTO_SUBMITTED, now)
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Full representation, including the token and answer key."""
        return {
            'attempt_id': self.attempt_id,
            'test_id': self.test_id,
            'assignment_id': self.assignment_id,
            'user_id': self.user_id,
            'attempt_token': self.attempt_token,
            'status': self.status.value,
            'started_at': serialize_datetime(self.started_at),
            'expires_at': serialize_datetime(self.expires_at),
            'submitted_at': serialize_datetime(self.submitted_at),
            'question_snapshots': [snapshot.to_dict() for snapshot in self.question_snapshots],
            'answers': [answer.to_dict() for answer in self.answers],
            'violations': [violation.to_dict() for violation in self.violations],
            'score': self.score,
            'max_score': self.max_score,
            'evaluated_by': self.evaluated_by,
            'evaluation_notes': self.evaluation_notes,
            'created_at': serialize_datetime(self.created_at),
            'updated_at': serialize_datetime(self.updated_at)
        }

    def to_public_dict(self, include_token: bool = False) -> Dict[str, Any]:
        """
        Representation safe to return to clients.

        The answer key is always removed. The token is only included when
        requested and the attempt is still live.
        """
        data = self.to_dict()
        data['question_snapshots'] = [snapshot.to_dict(include_key=False) for snapshot in self.question_snapshots]
        if not (include_token and self.is_live):
            del data['attempt_token']
        return data

    def questions(self) -> List[Dict[str, Any]]:
        """Question list as shown to the candidate."""
        return [snapshot.to_dict(include_key=False) for snapshot in self.question_snapshots]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestAttempt':
        return cls(
            attempt_id=data['attempt_id'],
            test_id=data['test_id'],
            assignment_id=data['assignment_id'],
            user_id=data['user_id'],
            attempt_token=data['attempt_token'],
            status=AttemptStatus(data.get('status', AttemptStatus.IN_PROGRESS.value)),
            started_at=parse_datetime(data.get('started_at')) or utcnow(),
            expires_at=parse_datetime(data['expires_at']),
            submitted_at=parse_datetime(data.get('submitted_at')),
            question_snapshots=[QuestionSnapshot.from_dict(s) for s in data.get('question_snapshots') or []],
            answers=[AttemptAnswer.from_dict(a) for a in data.get('answers') or []],
            violations=[Violation.from_dict(v) for v in data.get('violations') or []],
            score=data.get('score', 0),
            max_score=data.get('max_score', 0),
            evaluated_by=data.get('evaluated_by'),
            evaluation_notes=data.get('evaluation_notes') or '',
            created_at=parse_datetime(data.get('created_at')) or utcnow(),
            updated_at=parse_datetime(data.get('updated_at')) or utcnow()
        )
