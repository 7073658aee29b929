"""
Contenedor de dependencias de la app.

Se construye una vez en el lifespan (o se inyecta ya armado en tests), vive en
`app.state.container` y se desarma al apagar.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.core.config import Settings
from app.core.rate_limit import RateLimiter
from app.core.time import Clock, utc_now
from app.infrastructure.db.bootstrap import ensure_collections
from app.infrastructure.db.mongo import MongoConnection
from app.infrastructure.email.email_client import EmailClient
from app.infrastructure.security.passwords import PasswordService
from app.repositories.note_repo import NoteRepository
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService
from app.services.note_service import NoteService
from app.services.otp_service import OtpService
from app.services.token_service import TokenService

_log = logging.getLogger("notes.startup")


@dataclass
class AppContainer:
    settings: Settings
    notes: NoteService
    auth: AuthService
    tokens: TokenService
    rate_limiter: RateLimiter
    db_ping: Callable[[], bool]
    mongo: Optional[MongoConnection] = None

    def close(self) -> None:
        if self.mongo is not None:
            self.mongo.close()


def wire_services(
    settings: Settings,
    users: UserRepository,
    notes_repo: NoteRepository,
    email: EmailClient,
    *,
    passwords: Optional[PasswordService] = None,
    clock: Clock = utc_now,
    db_ping: Callable[[], bool] = lambda: True,
    mongo: Optional[MongoConnection] = None,
) -> AppContainer:
    """Arma servicios sobre repositorios ya construidos (reales o dobles de prueba)."""
    otp = OtpService(users, ttl_minutes=settings.otp_expire_minutes, clock=clock)
    tokens = TokenService(
        users,
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_days=settings.jwt_expire_days,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        clock=clock,
    )
    auth = AuthService(users, otp, tokens, passwords or PasswordService(settings), email, clock=clock)
    return AppContainer(
        settings=settings,
        notes=NoteService(notes_repo, clock=clock),
        auth=auth,
        tokens=tokens,
        rate_limiter=RateLimiter(),
        db_ping=db_ping,
        mongo=mongo,
    )


def build_container(settings: Settings) -> AppContainer:
    """Conecta Mongo, asegura colecciones/índices y arma el contenedor de producción."""
    mongo = MongoConnection(settings).connect()
    if mongo.ping():
        try:
            ensure_collections(mongo.db)
        except Exception as e:
            # No impedir el arranque si fallan validadores/índices
            _log.warning("ensure_collections() falló: %s", e)
    else:
        _log.warning("Mongo no listo; omitiendo ensure_collections()")

    return wire_services(
        settings,
        UserRepository(mongo.db),
        NoteRepository(mongo.db),
        EmailClient(settings),
        db_ping=mongo.ping,
        mongo=mongo,
    )
