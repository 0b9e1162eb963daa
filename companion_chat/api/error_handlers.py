"""
Exception handlers mapping domain errors onto the API envelope.

Operational errors return their own code and message. Anything else is
logged with its traceback and hidden behind a generic 500. Every error
response carries error_id, the request's correlation id.

Dependencies: fastapi, companion_chat.core.exceptions, companion_chat.observability
System role: HTTP error translation
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from companion_chat.configs import get_settings
from companion_chat.core.exceptions import ChatBotException
from companion_chat.models.common import ApiResponse
from companion_chat.observability.correlation import get_correlation_id

logger = logging.getLogger(__name__)


def _error_id(request: Request) -> str:
    return (
        get_correlation_id()
        or getattr(request.state, "correlation_id", None)
        or str(uuid.uuid4())
    )


def _error_response(
    status_code: int,
    code: str,
    message: str,
    error_id: str,
    exc: Exception,
) -> JSONResponse:
    details = None
    if get_settings().is_development:
        details = {"type": type(exc).__name__, "error": str(exc)}

    body = ApiResponse[None](
        success=False,
        code=code,
        message=message,
        error_id=error_id,
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


async def chatbot_exception_handler(request: Request, exc: ChatBotException) -> JSONResponse:
    """Translate ChatBotException subclasses."""
    error_id = _error_id(request)

    if not exc.is_operational:
        logger.error(
            f"Unexpected error {exc.code}: {exc}",
            exc_info=exc,
            extra={"error_id": error_id, "path": request.url.path, "method": request.method},
        )
        return _error_response(500, "INTERNAL_SERVER_ERROR", "Internal Server Error", error_id, exc)

    logger.warning(
        f"{exc.code}: {exc.message}",
        extra={
            "error_id": error_id,
            "code": exc.code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(exc.status_code, exc.code, exc.message, error_id, exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Translate request validation failures into 400 BAD_REQUEST."""
    error_id = _error_id(request)
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Bad Request: {first.get('msg', 'invalid request')}"
    if field:
        message = f"{message} ({field})"

    logger.warning(
        f"BAD_REQUEST: {message}",
        extra={"error_id": error_id, "path": request.url.path, "method": request.method},
    )
    return _error_response(400, "BAD_REQUEST", message, error_id, exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unclassified and return a generic 500."""
    error_id = _error_id(request)
    logger.error(
        f"Unhandled {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path, "method": request.method},
    )
    return _error_response(500, "INTERNAL_SERVER_ERROR", "Internal Server Error", error_id, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the app."""
    app.add_exception_handler(ChatBotException, chatbot_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
