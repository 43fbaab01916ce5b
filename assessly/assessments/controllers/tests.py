"""
Test Definition Controller
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_test_service
from assessly.assessments.schemas import RequestModel
from assessly.assessments.services import TestService
from assessly.common.auth import Permission, Principal, require_permissions

router = APIRouter()

can_create = require_permissions(Permission.CREATE)
can_view = require_permissions(Permission.CREATE, Permission.ASSIGN, Permission.REPORT)


class CreateTestRequest(RequestModel):
    __test__ = False

    title: str = Field(..., description="Test title")
    duration_minutes: int = Field(..., description="Time allowed per attempt")
    description: str = ""
    schedule_start: Optional[datetime] = None
    schedule_end: Optional[datetime] = None
    shuffle_questions: bool = True
    shuffle_options: bool = True
    violation_threshold: int = Field(3, description="Violations before auto-submit, 0 disables")
    passing_score: float = 0
    question_ids: List[str] = Field(default_factory=list)


class UpdateTestRequest(RequestModel):
    __test__ = False

    title: Optional[str] = None
    duration_minutes: Optional[int] = None
    description: Optional[str] = None
    schedule_start: Optional[datetime] = None
    schedule_end: Optional[datetime] = None
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    violation_threshold: Optional[int] = None
    passing_score: Optional[float] = None
    question_ids: Optional[List[str]] = None


@router.get("")
async def list_tests(
    principal: Principal = Depends(can_view),
    service: TestService = Depends(get_test_service)
):
    tests = await service.list_tests(principal)
    return APIResponse.success([t.to_dict() for t in tests], "Tests retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_test(
    payload: CreateTestRequest,
    principal: Principal = Depends(can_create),
    service: TestService = Depends(get_test_service)
):
    test = await service.create_test(principal, **payload.dict())
    return APIResponse.success(test.to_dict(), "Test created")


@router.get("/{test_id}")
async def get_test(
    test_id: str,
    principal: Principal = Depends(can_view),
    service: TestService = Depends(get_test_service)
):
    test, questions = await service.get_test_with_questions(test_id)
    data = test.to_dict()
    data["questions"] = [q.to_dict() for q in questions]
    return APIResponse.success(data)


@router.put("/{test_id}")
async def update_test(
    test_id: str,
    payload: UpdateTestRequest,
    principal: Principal = Depends(can_create),
    service: TestService = Depends(get_test_service)
):
    changes = payload.changes()
    # Explicit nulls only make sense for the schedule bounds
    changes = {k: v for k, v in changes.items() if v is not None or k in ("schedule_start", "schedule_end")}
    test = await service.update_test(test_id, principal, **changes)
    return APIResponse.success(test.to_dict(), "Test updated")


@router.delete("/{test_id}")
async def delete_test(
    test_id: str,
    principal: Principal = Depends(can_create),
    service: TestService = Depends(get_test_service)
):
    await service.delete_test(test_id)
    return APIResponse.success({"test_id": test_id}, "Test deleted")
