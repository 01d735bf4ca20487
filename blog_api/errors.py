"""
Error taxonomy shared by the orchestrators, the authorization gate and the
asset store, plus the FastAPI exception handlers that render every failure
as ``{"message": str}``.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BlogAPIError(Exception):
    """Base class for failures that map onto a client-visible status code."""

    status_code: int = 500
    default_message: str = "An unknown error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BlogAPIError):
    status_code = 422
    default_message = "Fill in all fields."


class Unauthenticated(BlogAPIError):
    status_code = 401
    default_message = "Unauthorized. No token."


class Forbidden(BlogAPIError):
    status_code = 403
    default_message = "Forbidden."


class InvalidToken(Forbidden):
    default_message = "Unauthorized. Invalid token."


class ExpiredToken(InvalidToken):
    default_message = "Unauthorized. Token expired."


class NotFound(BlogAPIError):
    status_code = 404
    default_message = "Not found."


class Conflict(BlogAPIError):
    status_code = 409
    default_message = "Email already exists."


class InvalidCredentials(BlogAPIError):
    status_code = 422
    default_message = "Invalid credentials."


class PayloadTooLarge(BlogAPIError):
    status_code = 413
    default_message = "File too big."


class UpdateFailed(BlogAPIError):
    status_code = 400
    default_message = "Couldn't update record."


class CreateFailed(BlogAPIError):
    status_code = 422
    default_message = "Couldn't create record."


class StorageIOError(BlogAPIError):
    status_code = 500
    default_message = "File storage failed."


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def blog_error_handler(request: Request, exc: BlogAPIError) -> JSONResponse:
    return _message(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return _message(404, f"Not found - {request.url.path}")
    return _message(exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = ValidationError.default_message
    return _message(422, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _message(500, BlogAPIError.default_message)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlogAPIError, blog_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
