"""Error taxonomy and JSON error rendering.

Learn: Every failure the API reports belongs to one ErrorKind. The kind
decides the HTTP status; the message is what the client sees. Handlers
registered on the app turn these exceptions into the uniform body
{"success": false, "message": "..."} so route code only raises.

Infrastructure failures are the only 500-class kind. Their internals are
never sent to clients unless the app runs in development/debug mode.
"""

import enum
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    DUPLICATE_KEY = "duplicate_key"
    NOT_FOUND = "not_found"
    INFRASTRUCTURE_FAILURE = "infrastructure_failure"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.DUPLICATE_KEY: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INFRASTRUCTURE_FAILURE: 500,
}


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE_FAILURE
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class AuthenticationError(AppError):
    """Who are you? No usable credentials on the request."""

    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Not authenticated"


class LinkingFailedError(AuthenticationError):
    """An external sign-in could not be reconciled with a local identity."""

    default_message = "Google OAuth authentication failed"


class PermissionDeniedError(AppError):
    """Are you allowed? Identity known, role or ownership insufficient."""

    kind = ErrorKind.FORBIDDEN
    default_message = "Not authorized to perform this action"


class DuplicateKeyError(AppError):
    kind = ErrorKind.DUPLICATE_KEY
    default_message = "Resource already exists"


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class InfrastructureError(AppError):
    kind = ErrorKind.INFRASTRUCTURE_FAILURE
    default_message = "Server error"


def error_body(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


def _auth_headers(status_code: int) -> Optional[dict]:
    if status_code == 401:
        return {"WWW-Authenticate": "Bearer"}
    return None


def register_exception_handlers(app: FastAPI, expose_internals: bool) -> None:
    """Install handlers that render every failure as a JSON error body.

    expose_internals adds the exception text to 500 responses; only
    development/debug deployments should turn it on.
    """

    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        extra = {}
        if exc.kind is ErrorKind.INFRASTRUCTURE_FAILURE:
            logger.error(
                "request.infrastructure_failure",
                path=request.url.path,
                error=str(exc.__cause__ or exc),
            )
            if expose_internals and exc.__cause__ is not None:
                extra["error"] = str(exc.__cause__)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, **extra),
            headers=_auth_headers(exc.status_code),
        )

    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        headers = dict(exc.headers or {})
        headers.update(_auth_headers(exc.status_code) or {})
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=headers or None,
        )

    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"field": ".".join(str(p) for p in e["loc"][1:]), "message": e["msg"]}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=error_body("Validation failed", errors=errors),
        )

    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request.unhandled_error", path=request.url.path)
        extra = {"error": str(exc)} if expose_internals else {}
        return JSONResponse(status_code=500, content=error_body("Server error", **extra))

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected)
