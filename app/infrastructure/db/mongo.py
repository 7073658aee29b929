"""Conexión MongoDB (PyMongo) con ciclo de vida explícito.

Se construye una sola vez en el lifespan de la app, se inyecta en los
repositorios y se cierra al apagar. No hay cliente global a nivel de módulo.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import certifi
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from app.core.config import Settings

_log = logging.getLogger("notes.mongo")


def build_client_kwargs(settings: Settings) -> Dict[str, Any]:
    """Opciones del cliente: timeout de selección, fechas tz-aware y TLS opcional."""
    uri = settings.mongo_uri
    kwargs: Dict[str, Any] = dict(serverSelectionTimeoutMS=settings.mongo_timeout_ms, tz_aware=True)
    if uri.startswith("mongodb+srv://"):
        # SRV ya implica TLS; proveemos CA bundle para robustez
        kwargs["tlsCAFile"] = certifi.where()
    elif settings.mongo_tls:
        kwargs["tls"] = True
        kwargs["tlsCAFile"] = certifi.where()
        if settings.mongo_tls_insecure:
            kwargs["tlsAllowInvalidCertificates"] = True
        if settings.mongo_tls_allow_invalid_hostnames:
            kwargs["tlsAllowInvalidHostnames"] = True
    return kwargs


class MongoConnection:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: Optional[MongoClient] = None
        self._db: Optional[Database] = None

    def connect(self) -> "MongoConnection":
        """Crea el cliente y valida conexión (ping).

        Si el servidor no responde dentro del timeout se deja registrado y la
        app arranca igual; cada operación fallará hasta que Mongo esté arriba.
        """
        self._client = MongoClient(self._settings.mongo_uri, **build_client_kwargs(self._settings))
        self._db = self._client[self._settings.mongo_db]
        try:
            self._client.admin.command("ping")
            _log.info("Mongo conectado db=%s", self._settings.mongo_db)
        except PyMongoError as e:
            _log.warning("Mongo no accesible al arrancar: %s", e)
        return self

    @property
    def db(self) -> Database:
        if self._db is None:
            raise RuntimeError("Mongo no inicializado; llama connect() primero")
        return self._db

    def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            self._client.admin.command("ping")
            return True
        except PyMongoError:
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            _log.info("Mongo desconectado")
        self._client = None
        self._db = None
