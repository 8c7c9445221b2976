"""Global exception handlers for the FastAPI application"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import settings
from core.exceptions import RecipeAPIException
from utils.responses import error_response, get_error_code

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"


async def recipe_api_exception_handler(request: Request, exc: RecipeAPIException) -> JSONResponse:
    """Handle custom recipe API exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message} - {exc.details}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    message, details = exc.message, exc.details
    if exc.status_code >= 500 and settings.is_production:
        message, details = GENERIC_SERVER_ERROR, []

    return error_response(exc.status_code, message, details, exc.code)


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle Starlette HTTPExceptions (including unknown routes)"""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(
            404, f"Endpoint {request.method} {request.url.path} not found", code="ENDPOINT_NOT_FOUND"
        )
    return error_response(
        exc.status_code,
        str(exc.detail),
        code=get_error_code(exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors"""
    logger.warning(f"Validation error: {exc.errors()}")

    # Format validation errors in a user-friendly way
    error_details = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        error_details.append(f"{field}: {error['msg']}")

    return error_response(400, "Validation failed", error_details, "VALIDATION_ERROR")


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions"""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)

    details = [] if settings.is_production else [f"{type(exc).__name__}: {str(exc)}"]
    return error_response(500, GENERIC_SERVER_ERROR, details, "INTERNAL_ERROR")
