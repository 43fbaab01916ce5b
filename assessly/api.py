"""
API plumbing shared by the feature routers: the versioned router, the
response envelopes and the exception handlers that render errors in the
error envelope.
"""

from fastapi import APIRouter, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Dict, Any, Mapping, Optional

from assessly.common.error_handling import AssesslyError, error_response, log_error
from assessly.common.logger import get_logger

logger = get_logger("api")


def register_module(main_router: APIRouter, name: str, router: APIRouter, prefix: str = "/api/v1") -> None:
    """
    Register a feature module router with the main API router.

    Args:
        main_router: Router collecting every module
        name: Name of the module, used as its path segment and tag
        router: FastAPI router for the module
        prefix: Versioned API prefix
    """
    main_router.include_router(router, prefix=f"{prefix}/{name}", tags=[name])
    logger.debug(f"Registered module: {name} with {len(router.routes)} routes")


def build_main_router(modules: Mapping[str, APIRouter], prefix: str = "/api/v1") -> APIRouter:
    """
    Build the main API router from named module routers.

    Args:
        modules: Module name -> router
        prefix: Versioned API prefix

    Returns:
        Router ready to be included in the application
    """
    main_router = APIRouter()
    for name, router in modules.items():
        register_module(main_router, name, router, prefix)
    return main_router


async def assessly_exception_handler(request: Request, exc: AssesslyError) -> JSONResponse:
    """
    Render an application error with its mapped HTTP status.

    Args:
        request: The incoming request
        exc: The raised error

    Returns:
        A JSON error response
    """
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=exc.http_status,
        content=jsonable_encoder(error_response(exc))
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A JSON response with error details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": error.get("loc", []),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(APIResponse.error(
            "Validation error",
            details=error_details,
            code="validation_error"
        ))
    )


class APIResponse:
    """Builders for the two response envelopes"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        """``{"status": "success", "message", "data"}``"""
        return {
            "status": "success",
            "message": message,
            "data": data
        }

    @staticmethod
    def error(message: str, details: Optional[Any] = None,
              code: Optional[str] = None) -> Dict[str, Any]:
        """``{"status": "error", "message"}`` plus ``code`` and ``details`` when given"""
        response = {
            "status": "error",
            "message": message
        }

        if details:
            response["details"] = details

        if code:
            response["code"] = code

        return response
