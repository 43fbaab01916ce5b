"""
Question Bank Controller

Endpoints for listing, creating, updating and deleting bank questions.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_question_service
from assessly.assessments.schemas import RequestModel
from assessly.assessments.services import QuestionService
from assessly.common.auth import Permission, Principal, require_permissions
from assessly.domain.questions import Difficulty, QuestionKind

router = APIRouter()

can_create = require_permissions(Permission.CREATE)


class OptionPayload(BaseModel):
    text: str = Field(..., description="Option text")
    is_correct: bool = Field(False, description="Whether this option is the answer")


class CreateQuestionRequest(RequestModel):
    kind: QuestionKind = Field(..., description="MCQ or DESCRIPTIVE")
    text: str = Field(..., description="Question text")
    options: List[OptionPayload] = Field(default_factory=list)
    marks: float = Field(1, ge=0)
    difficulty: Difficulty = Difficulty.MEDIUM
    topic: str = ""
    tags: List[str] = Field(default_factory=list)


class UpdateQuestionRequest(RequestModel):
    kind: Optional[QuestionKind] = None
    text: Optional[str] = None
    options: Optional[List[OptionPayload]] = None
    marks: Optional[float] = Field(None, ge=0)
    difficulty: Optional[Difficulty] = None
    topic: Optional[str] = None
    tags: Optional[List[str]] = None


@router.get("")
async def list_questions(
    kind: Optional[QuestionKind] = Query(None),
    difficulty: Optional[Difficulty] = Query(None),
    topic: Optional[str] = Query(None, description="Use __uncategorized__ for questions without a topic"),
    tag: Optional[str] = Query(None),
    principal: Principal = Depends(can_create),
    service: QuestionService = Depends(get_question_service)
):
    questions = await service.list_questions(kind=kind, difficulty=difficulty, topic=topic, tag=tag)
    return APIResponse.success([q.to_dict() for q in questions], "Questions retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_question(
    payload: CreateQuestionRequest,
    principal: Principal = Depends(can_create),
    service: QuestionService = Depends(get_question_service)
):
    question = await service.create_question(principal, **payload.dict())
    return APIResponse.success(question.to_dict(), "Question created")


@router.get("/{question_id}")
async def get_question(
    question_id: str,
    principal: Principal = Depends(can_create),
    service: QuestionService = Depends(get_question_service)
):
    question = await service.get_question(question_id)
    return APIResponse.success(question.to_dict())


@router.put("/{question_id}")
async def update_question(
    question_id: str,
    payload: UpdateQuestionRequest,
    principal: Principal = Depends(can_create),
    service: QuestionService = Depends(get_question_service)
):
    question = await service.update_question(question_id, **payload.changes())
    return APIResponse.success(question.to_dict(), "Question updated")


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    principal: Principal = Depends(can_create),
    service: QuestionService = Depends(get_question_service)
):
    await service.delete_question(question_id)
    return APIResponse.success({"question_id": question_id}, "Question deleted")
