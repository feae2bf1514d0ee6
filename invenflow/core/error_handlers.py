import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from invenflow.constants.error_codes import ErrorCode
from invenflow.core.exceptions import AppException
from invenflow.services.inventory.bulk_movement_token_service import mask_public_path

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    error_code: ErrorCode,
    details=None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error_code": error_code,
            "details": jsonable_encoder(details),
        },
    )


# -------------------------
# APP EXCEPTIONS
# -------------------------
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method, mask_public_path(request.url.path), exc.error_code,
        )
    else:
        logger.info(
            "%s %s rejected: %s (%s)",
            request.method, mask_public_path(request.url.path), exc.error_code, exc.status_code,
        )
    return error_response(exc.status_code, exc.detail, exc.error_code, exc.details)


# -------------------------
# FASTAPI VALIDATION
# -------------------------
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # input values are dropped: confirmation payloads come from the public
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    return error_response(422, "Invalid request data", ErrorCode.VALIDATION_ERROR, errors)


# -------------------------
# HTTP EXCEPTIONS (mapped)
# -------------------------
HTTP_STATUS_TO_ERROR_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_code = HTTP_STATUS_TO_ERROR_CODE.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    return error_response(exc.status_code, exc.detail, error_code)


# -------------------------
# DB INTEGRITY ERRORS
# -------------------------
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # constraint names only; the statement may carry a public token
    logger.error(
        "DB integrity error on %s %s: %s",
        request.method, mask_public_path(request.url.path), type(exc.orig).__name__,
    )
    return error_response(409, "Database constraint violation", ErrorCode.CONFLICT)


# -------------------------
# LAST RESORT
# -------------------------
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={
            "path": mask_public_path(request.url.path),
            "method": request.method,
        },
    )
    return error_response(
        500,
        "Something went wrong. Please try again.",
        ErrorCode.INTERNAL_ERROR,
    )
