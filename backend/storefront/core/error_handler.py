"""
Error handling and sanitization

- StorefrontError -> structured {"success": false, ...} payload
- Unhandled errors -> logged with traceback, generic message to the client
- Internal error text is only returned in development mode
"""
import logging
import traceback
from typing import Union

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.core.config import settings
from storefront.core.exceptions import StorefrontError

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "key",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "psycopg",
    "postgresql",
    "sqlite",
    "traceback",
    "file \"",
    "line ",
]

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    Returns the full message in development mode, a generic message when
    the text looks like it leaks internals, and a truncated message otherwise.
    """
    message = error if isinstance(error, str) else str(error)

    if settings.is_development:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    if len(message) > 200:
        return message[:200] + "..."

    return message


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Render domain errors with their status code and envelope."""
    logger.info(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and sanitize error responses.

    - In production: Returns generic error, logs full details
    - In development: Adds the raw error text for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except HTTPException:
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            content = {
                "success": False,
                "message": GENERIC_ERROR_MESSAGE,
                "error_id": error_id,
            }
            if settings.is_development:
                content["error"] = sanitize_error_message(e)
                content["type"] = type(e).__name__
            return JSONResponse(status_code=500, content=content)
