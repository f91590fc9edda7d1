"""Translate engine failures into HTTP responses.

Clients only ever see a fixed message and a reference code; the exception
text, which may carry database paths or flow internals, goes to the log
under the same reference.
"""

import logging
import uuid

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from chatflow.core.errors import (
    ChatflowError,
    ConfigError,
    FlowNotFoundError,
    GraphLoadError,
    SessionConflictError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order, so subclasses must come before their bases
ERROR_TABLE: list[tuple[type[Exception], int, str]] = [
    (ValidationError, 400, "Invalid request data."),
    (FlowNotFoundError, 404, "Chatbot not found"),
    (SessionConflictError, 409, "Conversation was updated by another request. Please retry."),
    (GraphLoadError, 500, "Chatbot definition could not be loaded."),
    (ConfigError, 500, "Server is misconfigured."),
    (StateError, 500, "Session storage is unavailable. Please try again."),
    (ChatflowError, 500, "The conversation could not be processed."),
]

FALLBACK = (500, "An internal error occurred. Please try again later.")
SUPPORT_HINT = "Quote the reference when reporting this problem."
FALLBACK_REPLY = "Sorry, an error occurred while processing your message."


def new_reference() -> str:
    """Short code shared by the client response and the server log line."""
    return "ERR-" + uuid.uuid4().hex[:8].upper()


def classify(exception: Exception) -> tuple[int, str]:
    """Return (status code, client-safe message) for an exception."""
    for error_type, status, message in ERROR_TABLE:
        if isinstance(exception, error_type):
            return status, message
    return FALLBACK


def _record(
    reference: str,
    exception: Exception,
    status: int,
    session_key: str | None,
    path: str | None,
) -> None:
    kind = type(exception).__name__
    # 4xx are caller mistakes; keep tracebacks for real faults
    level = logging.WARNING if status < 500 else logging.ERROR
    logger.log(
        level,
        "%s %s on %s (session=%s): %s",
        reference,
        kind,
        path or "?",
        session_key or "-",
        exception,
        exc_info=status >= 500,
        extra={
            "error_reference": reference,
            "session_key": session_key,
            "endpoint": path,
            "exception_type": kind,
            "status_code": status,
        },
    )


def create_error_response(
    exception: Exception,
    session_key: str | None = None,
    endpoint: str | None = None,
) -> HTTPException:
    """Log ``exception`` and build the sanitized HTTPException to raise."""
    reference = new_reference()
    status, message = classify(exception)
    _record(reference, exception, status, session_key, endpoint)
    return HTTPException(
        status_code=status,
        detail={"error": message, "reference": reference, "message": SUPPORT_HINT},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    reference = new_reference()
    _record(reference, exc, 500, None, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"reply": FALLBACK_REPLY, "error": FALLBACK[1], "reference": reference},
    )
