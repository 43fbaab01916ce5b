"""
Access Role Controller

Roles bundle permissions from the fixed vocabulary; a principal holding an
active role by name gains its permissions.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_role_service
from assessly.assessments.schemas import RequestModel
from assessly.assessments.services import RoleService
from assessly.common.auth import Permission, Principal, require_permissions

router = APIRouter()

can_manage = require_permissions(Permission.MANAGE_ROLES)


class CreateRoleRequest(RequestModel):
    name: str = Field(..., description="Unique role name")
    description: str = ""
    permissions: List[str] = Field(default_factory=list)
    is_active: bool = True


class UpdateRoleRequest(RequestModel):
    name: Optional[str] = None
    description: Optional[str] = None
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None


@router.get("")
async def list_roles(
    principal: Principal = Depends(can_manage),
    service: RoleService = Depends(get_role_service)
):
    roles = await service.list_roles()
    return APIResponse.success({
        "roles": [r.to_dict() for r in roles],
        "permissions": service.permission_vocabulary()
    }, "Roles retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_role(
    payload: CreateRoleRequest,
    principal: Principal = Depends(can_manage),
    service: RoleService = Depends(get_role_service)
):
    role = await service.create_role(principal, **payload.dict())
    return APIResponse.success(role.to_dict(), "Role created")


@router.get("/{role_id}")
async def get_role(
    role_id: str,
    principal: Principal = Depends(can_manage),
    service: RoleService = Depends(get_role_service)
):
    role = await service.get_role(role_id)
    return APIResponse.success(role.to_dict())


@router.put("/{role_id}")
async def update_role(
    role_id: str,
    payload: UpdateRoleRequest,
    principal: Principal = Depends(can_manage),
    service: RoleService = Depends(get_role_service)
):
    role = await service.update_role(role_id, **payload.changes())
    return APIResponse.success(role.to_dict(), "Role updated")


@router.delete("/{role_id}")
async def delete_role(
    role_id: str,
    principal: Principal = Depends(can_manage),
    service: RoleService = Depends(get_role_service)
):
    await service.delete_role(role_id)
    return APIResponse.success({"role_id": role_id}, "Role deleted")
