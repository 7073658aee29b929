"""
Dependencias reutilizables para routers (FastAPI Depends).

- Contenedor: se toma de `app.state` (armado en el lifespan o inyectado en tests).
- Autenticación: extrae el Bearer token y lo resuelve al usuario vigente.
- Rate limit: por IP + ruta para endpoints públicos.
- Mantener esta capa delgada: sin lógica de negocio.
"""
from typing import Optional

from fastapi import Depends, Header, Request

from app.core.config import Settings
from app.core.container import AppContainer
from app.core.exceptions import RateLimited, Unauthenticated
from app.domain.users.schemas import UserRecord
from app.services.auth_service import AuthService
from app.services.note_service import NoteService


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_auth_service(container: AppContainer = Depends(get_container)) -> AuthService:
    return container.auth


def get_note_service(container: AppContainer = Depends(get_container)) -> NoteService:
    return container.notes


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> UserRecord:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("Access denied. No token provided.", error_code="MISSING_TOKEN")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise Unauthenticated("Access denied. No token provided.", error_code="MISSING_TOKEN")
    return container.tokens.resolve(token)


def rate_limited(request: Request, container: AppContainer = Depends(get_container)) -> None:
    settings = container.settings
    if not settings.rate_limit_enabled:
        return
    ip = request.client.host if request.client else ""
    if not container.rate_limiter.allow((ip, request.url.path), limit=settings.auth_rate_limit_per_min, window_seconds=60):
        raise RateLimited()


def get_settings_dep(container: AppContainer = Depends(get_container)) -> Settings:
    return container.settings
