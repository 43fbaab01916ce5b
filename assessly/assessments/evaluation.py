"""
Manual Evaluation Service

Evaluators award marks to descriptive answers of finished attempts. The
same grading pass used at submission then recomputes the score, so MCQ
marks are never disturbed.
"""

from typing import Any, Iterable, List, Mapping

from assessly.common.auth.principal import Principal
from assessly.common.error_handling import ConflictError, NotFoundError
from assessly.common.logger import get_logger, with_context
from assessly.domain.attempts import TestAttempt, apply_manual_marks
from assessly.assessments.engine import AttemptEngine

logger = get_logger("assessments.evaluation")


class EvaluationService:
    """
    Evaluation workflow over finished attempts.

    Args:
        engine: Attempt engine, used for its stores and deadline handling
    """

    def __init__(self, engine: AttemptEngine):
        self.engine = engine
        self.attempts = engine.repositories.attempts

    async def list_pending(self, include_evaluated: bool = False) -> List[TestAttempt]:
        """
        List finished attempts awaiting evaluation, newest first.

        Overdue live attempts are expired first so they show up here.

        Args:
            include_evaluated: Also return attempts that already have an evaluator
        """
        await self.engine.expire_overdue()
        attempts = await self.attempts.list_terminal()
        if include_evaluated:
            return attempts
        return [attempt for attempt in attempts if attempt.evaluated_by is None]

    async def evaluate(
        self,
        attempt_id: str,
        evaluator: Principal,
        evaluations: Iterable[Mapping[str, Any]],
        notes: str = ""
    ) -> TestAttempt:
        """
        Save evaluator marks for an attempt and rescore it.

        Args:
            attempt_id: Attempt to evaluate
            evaluator: Principal performing the evaluation
            evaluations: Entries with ``question_id``, ``marks_awarded`` and ``feedback``
            notes: Overall notes

        Returns:
            The rescored attempt

        Raises:
            NotFoundError: If the attempt doesn't exist
            ConflictError: If the attempt has not finished yet
            ValidationError: If an entry is out of range or unknown
        """
        attempt = await self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt", attempt_id)
        attempt = await self.engine.expire_if_due(attempt)
        evaluations = list(evaluations)

        def evaluate(current: TestAttempt) -> None:
            if current.is_live:
                raise ConflictError("Attempt has not been submitted yet", details={'attempt_id': attempt_id})
            apply_manual_marks(current, evaluations, evaluator.id, notes)

        attempt = await self.attempts.modify(attempt_id, evaluate)
        with_context("assessments.evaluation", attempt_id=attempt_id, evaluator=evaluator.id).info(
            f"Evaluation saved, score {attempt.score}/{attempt.max_score}"
        )
        return attempt
