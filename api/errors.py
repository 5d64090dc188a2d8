"""
============================================================================
FILE: errors.py
LOCATION: api/errors.py
============================================================================

PURPOSE:
    Exception taxonomy for the KeliLink API and the FastAPI handlers that
    render it as `{"error": message}` JSON.

ROLE IN PROJECT:
    Routers raise these instead of building error responses by hand; the
    handlers registered in main.py map each class to its HTTP status.

KEY COMPONENTS:
    - KeliLinkError: Base class carrying status_code and message
    - BadRequestError, UnauthorizedError, NotFoundError, ConflictError
    - RateLimitExceededError: 429 with rate limit headers
    - ConfigurationError: Startup-time configuration failure
    - failure_message(text): Per-endpoint body for unexpected 500s
    - add_exception_handlers(app): Registers JSON handlers

DEPENDENCIES:
    - External: fastapi
    - Internal: logging_config

USAGE:
    from api.errors import NotFoundError
    raise NotFoundError("Peddler profile not found")
============================================================================
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

try:
    from logging_config import get_logger
except ImportError:
    from api.logging_config import get_logger


logger = get_logger("errors")


class KeliLinkError(Exception):
    """Base exception for errors that map to an HTTP response."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.code = code
        self.headers = headers or {}
        super().__init__(message)


class BadRequestError(KeliLinkError):
    status_code = 400


class UnauthorizedError(KeliLinkError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.headers.setdefault("WWW-Authenticate", "Bearer")


class ForbiddenError(KeliLinkError):
    status_code = 403


class NotFoundError(KeliLinkError):
    status_code = 404


class ConflictError(KeliLinkError):
    """Duplicate resource. Rendered as 400 to keep the public contract."""

    status_code = 400


class RateLimitExceededError(KeliLinkError):
    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)


class ConfigurationError(Exception):
    """Raised when the service is missing configuration it cannot run without."""


DEFAULT_FAILURE_MESSAGE = "Internal server error"


def failure_message(message: str):
    """
    Set the 500 body an endpoint answers with when it fails unexpectedly.

    Apply below the route decorator so the registered endpoint carries it:

        @router.get("/profile")
        @failure_message("Failed to get peddler profile")
        async def get_profile(...):
    """

    def decorator(endpoint):
        endpoint.failure_message = message
        return endpoint

    return decorator


def _failure_message(request: Request) -> str:
    # Starlette records the matched endpoint in the request scope
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "failure_message", None) or DEFAULT_FAILURE_MESSAGE


def _error_body(message: str, code: Optional[str] = None, **extra: Any) -> dict:
    body = {"error": message}
    if code:
        body["code"] = code
    body.update(extra)
    return body


def _rate_limit_headers(request: Request) -> Dict[str, str]:
    return dict(getattr(request.state, "rate_limit_headers", None) or {})


def add_exception_handlers(app: FastAPI) -> None:
    """Register JSON exception handlers on the app."""

    @app.exception_handler(KeliLinkError)
    async def kelilink_error_handler(request: Request, exc: KeliLinkError):
        headers = _rate_limit_headers(request)
        headers.update(exc.headers)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.code),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ):
        headers = _rate_limit_headers(request)
        headers.update(getattr(exc, "headers", None) or {})
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        details = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request body", details=details),
            headers=_rate_limit_headers(request),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(_failure_message(request)),
            headers=_rate_limit_headers(request),
        )
