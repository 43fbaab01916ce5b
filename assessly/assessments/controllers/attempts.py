"""
Attempt Controller

Candidate-facing endpoints: start or resume an attempt, fetch it, submit
answers, report proctoring violations and review finished attempts.
The attempt token is echoed back only while the attempt is live.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import Field, StrictInt

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_engine
from assessly.assessments.engine import AttemptEngine
from assessly.assessments.schemas import RequestModel
from assessly.common.auth import Permission, Principal, require_permissions
from assessly.domain.attempts import TestAttempt
from assessly.domain.questions import QuestionKind

router = APIRouter()

can_take = require_permissions(Permission.TAKE)


class StartAttemptRequest(RequestModel):
    assignment_id: str = Field(..., description="Assignment to start under")


class AnswerPayload(RequestModel):
    question_id: str
    kind: Optional[QuestionKind] = None
    selected_option_index: Optional[StrictInt] = None
    answer_text: str = ""


class SubmitAttemptRequest(RequestModel):
    attempt_token: str = Field(..., description="Token issued when the attempt started")
    answers: List[AnswerPayload] = Field(default_factory=list)


class ViolationRequest(RequestModel):
    attempt_token: str = Field(..., description="Token issued when the attempt started")
    type: str = Field(..., description="Violation kind, e.g. tab_switch")
    details: str = ""


def _owner_view(attempt: TestAttempt) -> dict:
    data = attempt.to_public_dict(include_token=True)
    data["questions"] = attempt.questions()
    del data["question_snapshots"]
    return data


@router.post("/start")
async def start_attempt(
    payload: StartAttemptRequest,
    principal: Principal = Depends(can_take),
    engine: AttemptEngine = Depends(get_engine)
):
    result = await engine.start_attempt(payload.assignment_id, principal)
    message = "Attempt started" if result.created else "Attempt resumed"
    return JSONResponse(
        status_code=201 if result.created else 200,
        content=jsonable_encoder(APIResponse.success(_owner_view(result.attempt), message))
    )


@router.get("/my")
async def list_my_attempts(
    principal: Principal = Depends(can_take),
    engine: AttemptEngine = Depends(get_engine)
):
    attempts = await engine.list_my_attempts(principal)
    return APIResponse.success([a.to_public_dict() for a in attempts], "Attempts retrieved")


@router.get("/{attempt_id}")
async def get_attempt(
    attempt_id: str,
    principal: Principal = Depends(can_take),
    engine: AttemptEngine = Depends(get_engine)
):
    attempt = await engine.get_attempt(attempt_id, principal)
    return APIResponse.success(_owner_view(attempt))


@router.post("/{attempt_id}/submit")
async def submit_attempt(
    attempt_id: str,
    payload: SubmitAttemptRequest,
    principal: Principal = Depends(can_take),
    engine: AttemptEngine = Depends(get_engine)
):
    answers = [answer.dict() for answer in payload.answers]
    attempt = await engine.submit_attempt(attempt_id, principal, payload.attempt_token, answers)
    return APIResponse.success(attempt.to_public_dict(), "Attempt submitted")


@router.post("/{attempt_id}/violations")
async def log_violation(
    attempt_id: str,
    payload: ViolationRequest,
    request: Request,
    principal: Principal = Depends(can_take),
    engine: AttemptEngine = Depends(get_engine)
):
    attempt = await engine.log_violation(
        attempt_id,
        principal,
        payload.attempt_token,
        payload.type,
        details=payload.details,
        ip_address=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", "")
    )
    data = {
        "attempt_id": attempt.attempt_id,
        "status": attempt.status.value,
        "violation_count": len(attempt.violations),
        "auto_submitted": attempt.is_terminal,
    }
    message = "Attempt auto-submitted" if attempt.is_terminal else "Violation recorded"
    return APIResponse.success(data, message)


@router.get("/{attempt_id}/review")
async def review_attempt(
    attempt_id: str,
    principal: Principal = Depends(can_take),
    engine: AttemptEngine = Depends(get_engine)
):
    review = await engine.review_attempt(attempt_id, principal)
    return APIResponse.success(review)
