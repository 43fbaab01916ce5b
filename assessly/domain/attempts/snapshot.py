"""
Snapshot construction for new attempts.

Questions are copied out of the question bank once, when an attempt is
created. Question order and MCQ option order are shuffled per the test's
policy and the correct-option index is recomputed for the presented order.
"""

import random
from typing import List, Optional, Sequence, TypeVar

from assessly.domain.definitions.model import Test
from assessly.domain.questions.model import Question, QuestionKind
from .model import QuestionSnapshot

T = TypeVar('T')


def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Return a uniformly shuffled copy of ``items``."""
    result = list(items)
    rng.shuffle(result)
    return result


def snapshot_question(question: Question, shuffle_options: bool, rng: random.Random) -> QuestionSnapshot:
    """
    Freeze one question.

    Args:
        question: Live question bank entry
        shuffle_options: Whether to permute MCQ options
        rng: Random source

    Returns:
        Snapshot with option texts only and the key for the presented order
    """
    if question.kind != QuestionKind.MCQ:
        return QuestionSnapshot(
            question_id=question.question_id,
            kind=question.kind,
            text=question.text,
            marks=question.marks
        )

    options = list(question.options)
    if shuffle_options:
        options = shuffled(options, rng)

    correct_option_index: Optional[int] = next(
        (index for index, option in enumerate(options) if option.is_correct),
        None
    )
    return QuestionSnapshot(
        question_id=question.question_id,
        kind=question.kind,
        text=question.text,
        options=[option.text for option in options],
        marks=question.marks,
        correct_option_index=correct_option_index
    )


def build_snapshots(test: Test, questions: List[Question], rng: Optional[random.Random] = None) -> List[QuestionSnapshot]:
    """
    Build the frozen question list for a new attempt.

    Args:
        test: Test providing the shuffle policy
        questions: Existing questions in the test's defined order
        rng: Random source (a fresh ``random.SystemRandom`` when omitted)

    Returns:
        Snapshots in presentation order
    """
    rng = rng or random.SystemRandom()
    ordered = shuffled(questions, rng) if test.shuffle_questions else list(questions)
    return [snapshot_question(question, test.shuffle_options, rng) for question in ordered]
