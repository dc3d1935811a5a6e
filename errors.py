import logging
from typing import Any, Dict, Optional, Sequence

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from settings import settings

logger = logging.getLogger(__name__)


class ShopError(HTTPException):
    status_code = 400

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.extra = extra or {}


class ValidationError(ShopError):
    status_code = 400


class AuthenticationError(ShopError):
    status_code = 401


class AuthorizationError(ShopError):
    status_code = 403


class NotFoundError(ShopError):
    status_code = 404


class ConflictError(ShopError):
    status_code = 409


class TooManyRequestsError(ShopError):
    status_code = 429


def envelope(message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "message": message, **extra}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    extra = getattr(exc, "extra", {})
    return JSONResponse(status_code=exc.status_code, content=envelope(str(exc.detail), **extra))


def first_error_message(errors: Sequence[Dict[str, Any]]) -> str:
    """Render the first pydantic error as "field: msg"."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=envelope(first_error_message(exc.errors())))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = str(exc) if settings.is_development else "Server error"
    return JSONResponse(status_code=500, content=envelope("Internal server error", error=error))
