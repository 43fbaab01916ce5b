"""
Evaluation Controller
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_evaluation_service
from assessly.assessments.evaluation import EvaluationService
from assessly.assessments.schemas import RequestModel
from assessly.common.auth import Permission, Principal, require_permissions
from assessly.domain.attempts import TestAttempt

router = APIRouter()

can_evaluate = require_permissions(Permission.EVALUATE)


class MarkPayload(RequestModel):
    question_id: str
    marks_awarded: float = 0
    feedback: str = ""


class EvaluateRequest(RequestModel):
    answers: List[MarkPayload] = Field(default_factory=list)
    evaluation_notes: str = ""


def _evaluator_view(attempt: TestAttempt) -> dict:
    # Finished attempts only, so the answer key may be shown
    data = attempt.to_public_dict()
    data["question_snapshots"] = [s.to_dict(include_key=True) for s in attempt.question_snapshots]
    return data


@router.get("/pending")
async def list_pending(
    include_evaluated: bool = Query(False),
    principal: Principal = Depends(can_evaluate),
    service: EvaluationService = Depends(get_evaluation_service)
):
    attempts = await service.list_pending(include_evaluated=include_evaluated)
    return APIResponse.success([_evaluator_view(a) for a in attempts], "Pending attempts retrieved")


@router.post("/{attempt_id}")
async def evaluate_attempt(
    attempt_id: str,
    payload: EvaluateRequest,
    principal: Principal = Depends(can_evaluate),
    service: EvaluationService = Depends(get_evaluation_service)
):
    attempt = await service.evaluate(
        attempt_id,
        principal,
        [entry.dict() for entry in payload.answers],
        notes=payload.evaluation_notes
    )
    return APIResponse.success(_evaluator_view(attempt), "Evaluation saved")
