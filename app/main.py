"""Entrada principal de la app FastAPI (configura middlewares, excepciones y routers)."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from app.api.router import api_router
from app.api.routers import health
from app.core.config import Settings, get_settings
from app.core.container import AppContainer, build_container
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging
from app.core.middleware import add_middlewares

_log = logging.getLogger("notes.startup")


def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> FastAPI:
    """Fábrica de la app.

    Sin `container`, el lifespan conecta Mongo y arma los servicios al arrancar
    y los cierra al apagar. Con `container` (tests) no se abre ninguna conexión.
    """
    settings = settings or (container.settings if container else get_settings())
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "container", None) is None:
            owned = build_container(settings)
            app.state.container = owned
            _log.info("%s %s listo (env=%s)", settings.app_name, settings.app_version, settings.environment)
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.container = None

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.container = container

    add_middlewares(app, settings)
    register_exception_handlers(app, settings)

    app.include_router(health.router)
    # Monta routers bajo el prefijo configurado
    app.include_router(api_router, prefix=settings.api_prefix_normalized)
    return app


app = create_app()
