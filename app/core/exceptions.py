"""
Taxonomía de errores de dominio y handlers globales para respuestas consistentes.

Todas las respuestas de error usan el sobre `{success, message, error, data?}`.
El detalle interno (stack) sólo se expone con `environment=development`.
"""
import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import Settings


class AppError(Exception):
    """Error base de la aplicación con código estable para el cliente."""

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code
        self.data = data
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(self, errors: List[Dict[str, Any]], message: Optional[str] = None, **kwargs: Any) -> None:
        self.errors = errors
        super().__init__(message, data={"errors": errors}, **kwargs)


class InvalidQuery(ValidationError):
    error_code = "INVALID_SEARCH_QUERY"
    default_message = "Search query must be between 2 and 100 characters"

    def __init__(self, query: Optional[str] = None) -> None:
        super().__init__(
            [{"field": "q", "message": self.default_message, "value": query}],
        )


class InvalidOtp(AppError):
    status_code = 400
    error_code = "INVALID_OTP"
    default_message = "Invalid or expired OTP code"


class AlreadyVerified(AppError):
    status_code = 400
    error_code = "EMAIL_ALREADY_VERIFIED"
    default_message = "Email is already verified"


class Conflict(AppError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class Unauthenticated(AppError):
    status_code = 401
    error_code = "INVALID_TOKEN"
    default_message = "Authentication required"


class TokenExpired(Unauthenticated):
    error_code = "TOKEN_EXPIRED"
    default_message = "Token has expired. Please login again."


class TokenMalformed(Unauthenticated):
    error_code = "INVALID_TOKEN_FORMAT"
    default_message = "Invalid token format."


class AccountDeactivated(Unauthenticated):
    error_code = "ACCOUNT_DEACTIVATED"
    default_message = "Account is deactivated. Please contact support."


class NotFound(AppError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class RateLimited(AppError):
    status_code = 429
    error_code = "RATE_LIMITED"
    default_message = "Too many requests, please try again later"


class Internal(AppError):
    """Fallo inesperado (store/transporte); su detalle sólo sale con environment=development."""


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def _envelope(request: Request, message: str, error: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message, "error": error}
    if data is not None:
        body["data"] = data
    rid = _req_id(request)
    if rid:
        body["requestId"] = rid
    return body


def _field_of(loc: tuple) -> str:
    # ("body", "noteTags", 3) -> "noteTags[3]"
    parts = [p for p in loc if p not in ("body", "query", "path")]
    out = ""
    for p in parts:
        out += f"[{p}]" if isinstance(p, int) else (f".{p}" if out else str(p))
    return out or ".".join(str(p) for p in loc)


_HTTP_ERROR_CODES = {
    404: "ROUTE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    log = logging.getLogger("notes.errors")

    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error("AppError %s request_id=%s: %s", exc.error_code, _req_id(request), exc.message)
        body = _envelope(request, exc.message, exc.error_code, exc.data)
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        message = "Route not found" if exc.status_code == 404 else str(exc.detail or "HTTP error")
        data = {"requestedUrl": request.url.path, "method": request.method} if exc.status_code == 404 else None
        body = _envelope(request, message, code, data)
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": _field_of(tuple(e.get("loc", ()))),
                "message": str(e.get("msg", "")).removeprefix("Value error, "),
                "value": e.get("input") if isinstance(e.get("input"), (str, int, float, bool, type(None))) else None,
            }
            for e in exc.errors()
        ]
        body = _envelope(request, "Validation failed", "VALIDATION_ERROR", {"errors": errors})
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        rid = _req_id(request)
        log.exception("Unhandled error request_id=%s", rid)
        err = Internal()
        body = _envelope(request, err.message, err.error_code)
        if settings.is_development:
            body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=err.status_code, content=body)
