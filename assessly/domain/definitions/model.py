"""
Test Definition Domain Model Module

A test is an ordered reference to question bank entries plus the timing,
shuffling and scoring policy applied to every attempt at it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from assessly.common.error_handling import ValidationError
from assessly.common.utils import new_id, utcnow, serialize_datetime, parse_datetime, unique_in_order


@dataclass
class Test:
    """
    Represents a test definition.

    Attributes:
        test_id: Unique identifier for the test
        title: Display title
        description: Optional long description
        duration_minutes: Time allowed for one attempt
        schedule_start: Optional start of the window in which attempts may begin
        schedule_end: Optional end of that window
        shuffle_questions: Randomize question order per attempt
        shuffle_options: Randomize MCQ option order per attempt
        violation_threshold: Violations that force submission (0 disables)
        passing_score: Score needed to pass
        question_ids: Ordered, duplicate-free question references
        created_by: Principal that created the test
        updated_by: Principal that last updated the test
    """
    __test__ = False

    test_id: str
    title: str
    duration_minutes: int
    description: str = ""
    schedule_start: Optional[datetime] = None
    schedule_end: Optional[datetime] = None
    shuffle_questions: bool = True
    shuffle_options: bool = True
    violation_threshold: int = 3
    passing_score: float = 0
    question_ids: List[str] = field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               title: str,
               duration_minutes: int,
               description: str = "",
               schedule_start: Optional[datetime] = None,
               schedule_end: Optional[datetime] = None,
               shuffle_questions: bool = True,
               shuffle_options: bool = True,
               violation_threshold: int = 3,
               passing_score: float = 0,
               question_ids: Optional[List[str]] = None,
               created_by: Optional[str] = None,
               now: Optional[datetime] = None) -> 'Test':
        """
        Create and validate a new test definition.

        ``question_ids`` is stored as given (deduplicated); pruning against the
        question bank is the caller's job.

        Raises:
            ValidationError: If required fields are missing or inconsistent
        """
        stamp = now or utcnow()
        test = cls(
            test_id=new_id(),
            title=(title or "").strip(),
            description=(description or "").strip(),
            duration_minutes=duration_minutes,
            schedule_start=schedule_start,
            schedule_end=schedule_end,
            shuffle_questions=shuffle_questions,
            shuffle_options=shuffle_options,
            violation_threshold=violation_threshold,
            passing_score=passing_score,
            question_ids=unique_in_order(question_ids or []),
            created_by=created_by,
            created_at=stamp,
            updated_at=stamp
        )
        test.validate()
        return test

    def validate(self) -> None:
        errors = {}
        if not self.title:
            errors['title'] = "Title is required"
        if self.duration_minutes is None or self.duration_minutes < 1:
            errors['duration_minutes'] = "Duration must be at least one minute"
        if self.violation_threshold is None or self.violation_threshold < 0:
            errors['violation_threshold'] = "Violation threshold cannot be negative"
        if self.passing_score is None or self.passing_score < 0:
            errors['passing_score'] = "Passing score cannot be negative"
        if self.schedule_start and self.schedule_end and self.schedule_end <= self.schedule_start:
            errors['schedule_end'] = "Schedule end must be after schedule start"
        if errors:
            raise ValidationError("Invalid test", details={'errors': errors})

    def is_open(self, now: datetime) -> bool:
        """Whether ``now`` falls inside the test's own schedule window."""
        if self.schedule_start and now < self.schedule_start:
            return False
        if self.schedule_end and now > self.schedule_end:
            return False
        return True

    def update(self, updated_by: Optional[str] = None, now: Optional[datetime] = None, **changes: Any) -> None:
        """
        Apply field changes and re-validate.

        Args:
            updated_by: Principal performing the update
            now: Modification time (current UTC time by default)
            **changes: Attribute values to replace; unknown names are rejected

        Raises:
            ValidationError: If a field is unknown or the result is invalid
        """
        editable = {
            'title', 'description', 'duration_minutes', 'schedule_start', 'schedule_end',
            'shuffle_questions', 'shuffle_options', 'violation_threshold', 'passing_score',
            'question_ids'
        }
        unknown = set(changes) - editable
        if unknown:
            raise ValidationError("Unknown test fields", details={'fields': sorted(unknown)})

        for name, value in changes.items():
            if name in ('title', 'description') and value is not None:
                value = value.strip()
            if name == 'question_ids':
                value = unique_in_order(value or [])
            setattr(self, name, value)

        self.validate()
        self.updated_by = updated_by or self.updated_by
        self.updated_at = now or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'test_id': self.test_id,
            'title': self.title,
            'description': self.description,
            'duration_minutes': self.duration_minutes,
            'schedule_start': serialize_datetime(self.schedule_start),
            'schedule_end': serialize_datetime(self.schedule_end),
            'shuffle_questions': self.shuffle_questions,
            'shuffle_options': self.shuffle_options,
            'violation_threshold': self.violation_threshold,
            'passing_score': self.passing_score,
            'question_ids': list(self.question_ids),
            'created_by': self.created_by,
            'updated_by': self.updated_by,
            'created_at': serialize_datetime(self.created_at),
            'updated_at': serialize_datetime(self.updated_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Test':
        return cls(
            test_id=data['test_id'],
            title=data.get('title', ''),
            description=data.get('description') or '',
            duration_minutes=data.get('duration_minutes', 1),
            schedule_start=parse_datetime(data.get('schedule_start')),
            schedule_end=parse_datetime(data.get('schedule_end')),
            shuffle_questions=data.get('shuffle_questions', True),
            shuffle_options=data.get('shuffle_options', True),
            violation_threshold=data.get('violation_threshold', 3),
            passing_score=data.get('passing_score', 0),
            question_ids=list(data.get('question_ids') or []),
            created_by=data.get('created_by'),
            updated_by=data.get('updated_by'),
            created_at=parse_datetime(data.get('created_at')) or utcnow(),
            updated_at=parse_datetime(data.get('updated_at')) or utcnow()
        )
