"""Map domain errors to HTTP responses.

Every error body uses the envelope {"data": {"message": ...}}.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from abexp.domain.errors import (
    AlreadyFinishedError,
    DuplicateError,
    NotFoundError,
    UnknownError,
    ValidationError,
)
from abexp.middleware.logging import get_logger
from abexp.schemas.experiment import ErrorResponse

logger = get_logger()

STATUS_BY_ERROR = {
    ValidationError: 422,
    DuplicateError: 409,
    NotFoundError: 404,
    AlreadyFinishedError: 409,
}


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.with_message(message).model_dump(),
        headers=headers,
    )


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return error_response(status_code, str(exc))
    return await unknown_error_handler(request, exc)


async def unknown_error_handler(request: Request, exc: Exception) -> JSONResponse:
    cause = exc.__cause__
    logger.error(
        "internal_error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        cause=repr(cause) if cause else None,
    )
    return error_response(500, "Internal server error")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def request_validation_error_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return error_response(422, "; ".join(messages) or "invalid request")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""
    for error_type in STATUS_BY_ERROR:
        app.add_exception_handler(error_type, domain_error_handler)
    app.add_exception_handler(UnknownError, unknown_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
