"""
Application error taxonomy and the FastAPI handlers that render it.

Every error the service raises on purpose is an ``AppError`` subclass that
knows its HTTP status, a client-facing message and an optional detail.
Handlers turn them into the uniform body::

    {"code": 404, "message": "Article not found", "detail": "..."}

Errors in the 5xx range are programmer or infrastructure faults: the
handler logs them with a full traceback and answers with a generic body so
that no implementation detail reaches the client.
"""
import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_INTERNAL_MESSAGE = "Internal Server Error"
GENERIC_INTERNAL_DETAIL = "An unexpected error occurred"

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


class AppError(Exception):
    status_code: int = 500
    message: str = GENERIC_INTERNAL_MESSAGE
    detail: str | None = None
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        if message is not None:
            self.message = message
        if detail is not None:
            self.detail = detail
        super().__init__(self.message if self.detail is None else f"{self.message}: {self.detail}")


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------

class UnauthenticatedError(AppError):
    status_code = 401
    message = "Authentication required"
    detail = "An Authorization header is required"
    headers = _BEARER_CHALLENGE


class InvalidCredentialsError(UnauthenticatedError):
    message = "Invalid credentials"
    detail = "Email or password is incorrect"


class MalformedAuthHeaderError(AppError):
    status_code = 401
    message = "Malformed authorization header"
    detail = "Expected 'Authorization: Bearer <token>'"
    headers = _BEARER_CHALLENGE


class InvalidTokenError(AppError):
    status_code = 401
    message = "Invalid token"
    detail = "The token is invalid or has expired"
    headers = _BEARER_CHALLENGE


class PermissionDeniedError(AppError):
    status_code = 403
    message = "Permission denied"
    detail = "You don't have permission to perform this action"


# ---------------------------------------------------------------------------
# Resource / request errors
# ---------------------------------------------------------------------------

class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str = "Resource") -> None:
        self.resource = resource
        super().__init__(
            f"{resource} not found",
            f"The requested {resource.lower()} does not exist",
        )


class ValidationError(AppError):
    status_code = 422
    message = "Invalid input"


class ConflictError(AppError):
    status_code = 409
    message = "Conflict"


# ---------------------------------------------------------------------------
# Internal faults (never shown verbatim to clients)
# ---------------------------------------------------------------------------

class ConfigurationError(AppError):
    """A collaborator was used before the application constructed it."""


class ContextError(AppError):
    """Request-scoped identity was read on a request that never passed the guard."""


class InternalError(AppError):
    """An unexpected store or I/O failure."""


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def error_body(code: int, message: str, detail: str | None = None) -> dict:
    body: dict = {"code": code, "message": message}
    if detail:
        body["detail"] = detail
    return body


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=error_body(500, GENERIC_INTERNAL_MESSAGE, GENERIC_INTERNAL_DETAIL),
    )


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s while handling %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return internal_error_response()
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, exc.detail),
        headers=exc.headers,
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    phrase = HTTPStatus(exc.status_code).phrase
    detail = exc.detail if isinstance(exc.detail, str) and exc.detail != phrase else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, phrase, detail),
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_body(ValidationError.status_code, ValidationError.message, "; ".join(problems)),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
