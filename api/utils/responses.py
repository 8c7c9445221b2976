"""Envelope helpers shared by the routers and the exception handlers."""

from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from models.responses import ErrorResponse, PaginationMetadata

DEFAULT_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
}


def get_error_code(status_code: int) -> str:
    return DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def success_response(data: Any, message: str = "Success") -> Dict[str, Any]:
    return {"error": False, "message": message, "data": data}


def paginated_response(
    data: List[Any], pagination: Dict[str, Any], message: str = "Success"
) -> Dict[str, Any]:
    return {
        "error": False,
        "message": message,
        "data": data,
        "pagination": PaginationMetadata(**pagination),
    }


def error_response(
    status_code: int,
    message: str,
    details: Optional[List[str]] = None,
    code: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            message=message,
            details=details or [],
            code=code or get_error_code(status_code),
        ).model_dump(),
        headers=headers,
    )


def bulk_response(
    result: Dict[str, Any], message: str, partial_message: str, success_status: int
) -> JSONResponse:
    """201/200 when every item succeeded, 207 Multi-Status otherwise."""
    has_errors = bool(result["errors"])
    return JSONResponse(
        status_code=status.HTTP_207_MULTI_STATUS if has_errors else success_status,
        content=jsonable_encoder(success_response(result, partial_message if has_errors else message)),
    )
