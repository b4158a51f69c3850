"""Map errors onto the `{success, data?, error?, message?}` response envelope."""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from familycal.errors import (
    DecryptionError,
    FamilyCalendarError,
    NoCredentialsError,
    NotFoundError,
    RemoteApiError,
    StorageError,
    ValidationError,
)
from familycal.models.responses import ApiResponse

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[FamilyCalendarError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    RemoteApiError: status.HTTP_502_BAD_GATEWAY,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DecryptionError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def envelope(
    body: ApiResponse,
    status_code: int = status.HTTP_200_OK,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render a response envelope, leaving out fields that are None."""
    content: dict[str, Any] = {"success": body.success}
    for name in ("data", "error", "message", "details"):
        value = getattr(body, name)
        if value is not None:
            content[name] = jsonable_encoder(value)
    return JSONResponse(content, status_code=status_code, headers=headers)


def success_response(
    data: Any = None, message: str | None = None, status_code: int = status.HTTP_200_OK
) -> JSONResponse:
    return envelope(ApiResponse(success=True, data=data, message=message), status_code)


def failure_response(
    error: str,
    status_code: int,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return envelope(
        ApiResponse(success=False, error=error, details=details), status_code, headers
    )


def register_exception_handlers(app: FastAPI, expose_details: bool) -> None:
    """Install the handlers on `app`.

    Args:
        expose_details: Include the message of unexpected errors in the
            response. Disabled in production.
    """

    @app.exception_handler(NoCredentialsError)
    async def handle_no_credentials(request: Request, exc: NoCredentialsError) -> JSONResponse:
        logger.info(f"Request needs Google credentials: path={request.url.path}, error={exc}")
        return envelope(ApiResponse(success=False, message=str(exc)))

    @app.exception_handler(FamilyCalendarError)
    async def handle_app_error(request: Request, exc: FamilyCalendarError) -> JSONResponse:
        status_code = next(
            (code for kind, code in ERROR_STATUS_CODES.items() if isinstance(exc, kind)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        logger.error(
            f"Request failed: path={request.url.path}, status_code={status_code}, "
            f"exception_type={type(exc).__name__}, error={exc}"
        )
        return failure_response(str(exc), status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"][1:]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        logger.warning(f"Validation failed: path={request.url.path}, errors={errors}")
        return failure_response(
            "Validation failed", status.HTTP_400_BAD_REQUEST, details={"errors": errors}
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return failure_response(
            str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            f"Unexpected error: path={request.url.path}, "
            f"exception_type={type(exc).__name__}, error={exc}"
        )
        return failure_response(
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=str(exc) if expose_details else None,
        )
