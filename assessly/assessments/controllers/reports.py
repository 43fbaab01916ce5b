"""
Reports Controller
"""

from fastapi import APIRouter, Depends

from assessly.api import APIResponse
from assessly.assessments.dependencies import get_report_service
from assessly.assessments.reports import ReportService
from assessly.common.auth import Permission, Principal, require_permissions

router = APIRouter()


@router.get("/overview")
async def overview(
    principal: Principal = Depends(require_permissions(Permission.REPORT)),
    service: ReportService = Depends(get_report_service)
):
    return APIResponse.success(await service.overview(), "Report generated")
