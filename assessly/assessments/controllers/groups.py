"""
Eligibility Group Controller
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_group_service
from assessly.assessments.schemas import RequestModel
from assessly.assessments.services import GroupService
from assessly.common.auth import Permission, Principal, require_permissions

router = APIRouter()

can_manage = require_permissions(Permission.MANAGE_GROUPS)


class CreateGroupRequest(RequestModel):
    name: str = Field(..., description="Unique group name")
    description: str = ""
    members: List[str] = Field(default_factory=list, description="Principal ids")
    is_active: bool = True


class UpdateGroupRequest(RequestModel):
    name: Optional[str] = None
    description: Optional[str] = None
    members: Optional[List[str]] = None
    is_active: Optional[bool] = None


@router.get("")
async def list_groups(
    principal: Principal = Depends(can_manage),
    service: GroupService = Depends(get_group_service)
):
    groups = await service.list_groups()
    return APIResponse.success([g.to_dict() for g in groups], "Groups retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: CreateGroupRequest,
    principal: Principal = Depends(can_manage),
    service: GroupService = Depends(get_group_service)
):
    group = await service.create_group(principal, **payload.dict())
    return APIResponse.success(group.to_dict(), "Group created")


@router.get("/{group_id}")
async def get_group(
    group_id: str,
    principal: Principal = Depends(can_manage),
    service: GroupService = Depends(get_group_service)
):
    group = await service.get_group(group_id)
    return APIResponse.success(group.to_dict())


@router.put("/{group_id}")
async def update_group(
    group_id: str,
    payload: UpdateGroupRequest,
    principal: Principal = Depends(can_manage),
    service: GroupService = Depends(get_group_service)
):
    group = await service.update_group(group_id, **payload.changes())
    return APIResponse.success(group.to_dict(), "Group updated")


@router.delete("/{group_id}")
async def delete_group(
    group_id: str,
    principal: Principal = Depends(can_manage),
    service: GroupService = Depends(get_group_service)
):
    await service.delete_group(group_id)
    return APIResponse.success({"group_id": group_id}, "Group deleted")
