"""
Answer normalization and manual evaluation.

Automatic grading lives on the attempt itself (``TestAttempt.rescore``);
this module prepares submitted answers and applies evaluator marks before
the same grading pass runs again.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from assessly.common.error_handling import ValidationError
from assessly.domain.questions.model import QuestionKind
from .model import AttemptAnswer, TestAttempt


def _as_index(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("selected_option_index must be an integer or null")
    return value


def normalize_answers(attempt: TestAttempt, payload: Iterable[Mapping[str, Any]]) -> List[AttemptAnswer]:
    """
    Turn a submitted answer list into stored answers.

    Each entry must reference a question of the attempt's snapshot at most
    once. The stored kind always comes from the snapshot; a client kind that
    contradicts it is rejected.

    Args:
        attempt: Attempt being submitted
        payload: Entries with ``question_id`` and optional ``kind``,
            ``selected_option_index`` and ``answer_text``

    Returns:
        Normalized answers in submission order

    Raises:
        ValidationError: If any entry is malformed
    """
    answers = []
    seen = set()
    for position, entry in enumerate(payload):
        question_id = entry.get('question_id')
        snapshot = attempt.snapshot_for(question_id) if question_id else None
        context = {'position': position, 'question_id': question_id}
        if snapshot is None:
            raise ValidationError("Answer references a question outside this attempt", details=context)
        if question_id in seen:
            raise ValidationError("Question answered more than once", details=context)
        seen.add(question_id)

        kind = entry.get('kind')
        if kind is not None and kind not in (snapshot.kind, snapshot.kind.value):
            raise ValidationError("Answer type does not match the question", details=context)

        selected = _as_index(entry.get('selected_option_index'))
        if selected is not None:
            if snapshot.kind != QuestionKind.MCQ:
                raise ValidationError("Descriptive answers take no option", details=context)
            if not 0 <= selected < len(snapshot.options):
                raise ValidationError("selected_option_index out of range", details=context)

        answers.append(AttemptAnswer(
            question_id=question_id,
            kind=snapshot.kind,
            selected_option_index=selected,
            answer_text=str(entry.get('answer_text') or '')
        ))
    return answers


def apply_manual_marks(
    attempt: TestAttempt,
    evaluations: Iterable[Mapping[str, Any]],
    evaluator_id: str,
    notes: str = ""
) -> float:
    """
    Record evaluator marks for descriptive answers and rescore.

    Entries that target MCQ answers, or descriptive questions the candidate
    left unanswered, change nothing.

    Args:
        attempt: A terminal attempt
        evaluations: Entries with ``question_id``, ``marks_awarded`` and optional ``feedback``
        evaluator_id: Principal performing the evaluation
        notes: Overall evaluation notes

    Returns:
        The new score

    Raises:
        ValidationError: If an entry references an unknown question or gives
            marks outside ``0..marks``
    """
    answers_by_id: Dict[str, AttemptAnswer] = {answer.question_id: answer for answer in attempt.answers}

    for entry in evaluations:
        question_id = entry.get('question_id')
        snapshot = attempt.snapshot_for(question_id) if question_id else None
        if snapshot is None:
            raise ValidationError("Evaluation references a question outside this attempt",
                                  details={'question_id': question_id})
        marks = entry.get('marks_awarded') or 0
        if isinstance(marks, bool) or not isinstance(marks, (int, float)) or not 0 <= marks <= snapshot.marks:
            raise ValidationError("marks_awarded must be between 0 and the question marks",
                                  details={'question_id': question_id, 'max': snapshot.marks})

        answer = answers_by_id.get(question_id)
        if answer is not None and answer.kind == QuestionKind.DESCRIPTIVE:
            answer.marks_awarded = marks
            answer.feedback = str(entry.get('feedback') or '')

    attempt.evaluated_by = evaluator_id
    attempt.evaluation_notes = notes or ''
    return attempt.rescore()
