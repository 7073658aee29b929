"""
Middlewares de aplicación: request id, logging por petición y CORS.

Orden efectivo (de afuera hacia adentro): RequestId -> Logging -> CORS -> rutas.
"""
import logging
import re
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import Settings

REQUEST_ID_HEADER = "X-Request-Id"
# Ids entrantes aceptados tal cual; cualquier otra cosa se reemplaza por uno nuevo
_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._\-]{1,128}")


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        rid = incoming if _SAFE_REQUEST_ID.fullmatch(incoming) else uuid.uuid4().hex
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Una línea por request; 4xx como warning y 5xx como error."""

    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.log = logging.getLogger("notes.request")

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dt_ms = int((time.perf_counter() - start) * 1000)
            level = logging.ERROR if status >= 500 else logging.WARNING if status >= 400 else logging.INFO
            self.log.log(
                level,
                "method=%s path=%s status=%s latency_ms=%s request_id=%s",
                request.method, request.url.path, status, dt_ms,
                getattr(request.state, "request_id", None),
            )


def add_middlewares(app: FastAPI, settings: Settings) -> None:
    cors_kwargs = dict(
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        allow_credentials=True,
    )
    if settings.cors_allow_any:
        # Con orígenes dinámicos, desactiva credentials para cumplir CORS
        cors_kwargs.update(allow_origins=[], allow_origin_regex=".*", allow_credentials=False)
    app.add_middleware(CORSMiddleware, **cors_kwargs)
    # El último agregado es el más externo: request id debe existir al loggear
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
