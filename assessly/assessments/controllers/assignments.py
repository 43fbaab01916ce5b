"""
Assignment Controller

Managers create assignments linking a test to users, roles and groups;
candidates list the assignments they can start right now.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_assignment_service
from assessly.assessments.schemas import RequestModel
from assessly.assessments.services import AssignmentService
from assessly.common.auth import Permission, Principal, require_permissions

router = APIRouter()

can_assign = require_permissions(Permission.ASSIGN)
can_take = require_permissions(Permission.TAKE)


class CreateAssignmentRequest(RequestModel):
    test_id: str = Field(..., description="Test being assigned")
    assigned_to_users: List[str] = Field(default_factory=list)
    assigned_to_roles: List[str] = Field(default_factory=list)
    assigned_to_groups: List[str] = Field(default_factory=list)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: bool = True


class UpdateAssignmentRequest(RequestModel):
    assigned_to_users: Optional[List[str]] = None
    assigned_to_roles: Optional[List[str]] = None
    assigned_to_groups: Optional[List[str]] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: Optional[bool] = None


@router.get("")
async def list_assignments(
    test_id: Optional[str] = Query(None),
    principal: Principal = Depends(can_assign),
    service: AssignmentService = Depends(get_assignment_service)
):
    assignments = await service.list_assignments(test_id)
    return APIResponse.success([a.to_dict() for a in assignments], "Assignments retrieved")


@router.get("/eligible")
async def list_eligible_assignments(
    principal: Principal = Depends(can_take),
    service: AssignmentService = Depends(get_assignment_service)
):
    eligible = await service.list_eligible(principal)
    data = []
    for assignment, test in eligible:
        entry = assignment.to_dict()
        entry["test"] = {
            "test_id": test.test_id,
            "title": test.title,
            "description": test.description,
            "duration_minutes": test.duration_minutes,
            "question_count": len(test.question_ids),
        }
        data.append(entry)
    return APIResponse.success(data, "Eligible assignments retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: CreateAssignmentRequest,
    principal: Principal = Depends(can_assign),
    service: AssignmentService = Depends(get_assignment_service)
):
    assignment = await service.create_assignment(principal, **payload.dict())
    return APIResponse.success(assignment.to_dict(), "Assignment created")


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: str,
    principal: Principal = Depends(can_assign),
    service: AssignmentService = Depends(get_assignment_service)
):
    assignment = await service.get_assignment(assignment_id)
    return APIResponse.success(assignment.to_dict())


@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    payload: UpdateAssignmentRequest,
    principal: Principal = Depends(can_assign),
    service: AssignmentService = Depends(get_assignment_service)
):
    assignment = await service.update_assignment(assignment_id, **payload.changes())
    return APIResponse.success(assignment.to_dict(), "Assignment updated")


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    principal: Principal = Depends(can_assign),
    service: AssignmentService = Depends(get_assignment_service)
):
    await service.delete_assignment(assignment_id)
    return APIResponse.success({"assignment_id": assignment_id}, "Assignment deleted")
