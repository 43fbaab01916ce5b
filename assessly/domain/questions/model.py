"""
Question Domain Model Module

This module defines the core domain entities for the question bank.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any

from assessly.common.error_handling import ValidationError
from assessly.common.utils import new_id, utcnow, serialize_datetime, parse_datetime


class QuestionKind(str, enum.Enum):
    """Kinds of questions the engine can grade."""
    MCQ = "MCQ"
    DESCRIPTIVE = "DESCRIPTIVE"


class Difficulty(str, enum.Enum):
    """Difficulty label attached to a question."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


# Topic filter value selecting questions without a topic
UNCATEGORIZED_TOPIC = "__uncategorized__"


@dataclass
class QuestionOption:
    """A single multiple-choice option."""
    text: str
    is_correct: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'text': self.text, 'is_correct': self.is_correct}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuestionOption':
        return cls(text=str(data.get('text') or '').strip(), is_correct=bool(data.get('is_correct', False)))


@dataclass
class Question:
    """
    Represents a reusable question in the question bank.

    Attributes:
        question_id: Unique identifier for the question
        kind: MCQ (graded automatically) or DESCRIPTIVE (graded manually)
        text: The question text
        options: Answer options with the correctness flag (MCQ only)
        marks: Marks available for the question
        difficulty: Difficulty label
        topic: Optional topic used for filtering
        tags: Free-form tags
        created_by: Principal that created the question
        created_at: When the question was created
        updated_at: When the question was last updated
    """
    question_id: str
    kind: QuestionKind
    text: str
    options: List[QuestionOption] = field(default_factory=list)
    marks: float = 1
    difficulty: Difficulty = Difficulty.MEDIUM
    topic: str = ""
    tags: List[str] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               kind: QuestionKind,
               text: str,
               options: Optional[List[QuestionOption]] = None,
               marks: float = 1,
               difficulty: Difficulty = Difficulty.MEDIUM,
               topic: str = "",
               tags: Optional[List[str]] = None,
               created_by: Optional[str] = None,
               now: Optional[datetime] = None) -> 'Question':
        """
        Create and validate a new question with a generated ID.

        Raises:
            ValidationError: If the question is malformed
        """
        stamp = now or utcnow()
        question = cls(
            question_id=new_id(),
            kind=QuestionKind(kind),
            text=(text or "").strip(),
            options=list(options or []),
            marks=marks,
            difficulty=Difficulty(difficulty),
            topic=(topic or "").strip(),
            tags=[tag.strip() for tag in tags or [] if tag and tag.strip()],
            created_by=created_by,
            created_at=stamp,
            updated_at=stamp
        )
        question.validate()
        return question

    @property
    def correct_option_index(self) -> Optional[int]:
        """Position of the option flagged correct, or None."""
        if self.kind != QuestionKind.MCQ:
            return None
        for index, option in enumerate(self.options):
            if option.is_correct:
                return index
        return None

    def validate(self) -> None:
        """
        Check the question invariants.

        Raises:
            ValidationError: If any invariant is violated
        """
        errors = {}
        if not self.text:
            errors['text'] = "Question text is required"
        if self.marks is None or self.marks < 0:
            errors['marks'] = "Marks must be zero or positive"
        if self.kind == QuestionKind.MCQ:
            if len(self.options) < 2:
                errors['options'] = "MCQ questions need at least two options"
            elif sum(1 for option in self.options if option.is_correct) != 1:
                errors['options'] = "MCQ questions need exactly one correct option"
            elif any(not option.text for option in self.options):
                errors['options'] = "Options must have text"
        elif self.options:
            errors['options'] = "Descriptive questions do not take options"
        if errors:
            raise ValidationError("Invalid question", details={'errors': errors})

    def update(self,
               kind: Optional[QuestionKind] = None,
               text: Optional[str] = None,
               options: Optional[List[QuestionOption]] = None,
               marks: Optional[float] = None,
               difficulty: Optional[Difficulty] = None,
               topic: Optional[str] = None,
               tags: Optional[List[str]] = None,
               now: Optional[datetime] = None) -> None:
        """
        Update the question's attributes and re-validate.

        Raises:
            ValidationError: If the result is malformed
        """
        if kind is not None:
            self.kind = QuestionKind(kind)
        if text is not None:
            self.text = text.strip()
        if options is not None:
            self.options = list(options)
        if marks is not None:
            self.marks = marks
        if difficulty is not None:
            self.difficulty = Difficulty(difficulty)
        if topic is not None:
            self.topic = topic.strip()
        if tags is not None:
            self.tags = [tag.strip() for tag in tags if tag and tag.strip()]

        self.validate()
        self.updated_at = now or utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the question to a dictionary.

        Returns:
            Dictionary representation of the question
        """
        return {
            'question_id': self.question_id,
            'kind': self.kind.value,
            'text': self.text,
            'options': [option.to_dict() for option in self.options],
            'marks': self.marks,
            'difficulty': self.difficulty.value,
            'topic': self.topic,
            'tags': list(self.tags),
            'created_by': self.created_by,
            'created_at': serialize_datetime(self.created_at),
            'updated_at': serialize_datetime(self.updated_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """
        Create a Question from a dictionary.

        Args:
            data: Dictionary containing question data

        Returns:
            A Question instance
        """
        return cls(
            question_id=data['question_id'],
            kind=QuestionKind(data.get('kind', QuestionKind.MCQ.value)),
            text=data.get('text', ''),
            options=[QuestionOption.from_dict(option) for option in data.get('options') or []],
            marks=data.get('marks', 1),
            difficulty=Difficulty(data.get('difficulty') or Difficulty.MEDIUM.value),
            topic=data.get('topic') or '',
            tags=list(data.get('tags') or []),
            created_by=data.get('created_by'),
            created_at=parse_datetime(data.get('created_at')) or utcnow(),
            updated_at=parse_datetime(data.get('updated_at')) or utcnow()
        )
