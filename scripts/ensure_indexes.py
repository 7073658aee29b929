"""Crea/actualiza validadores e índices de `users` y `notes`.

Uso típico:
  PYTHONPATH=. python scripts/ensure_indexes.py

Es idempotente: el arranque de la API hace lo mismo, pero este script permite
correrlo a mano (p. ej. después de restaurar un dump) y ver los índices finales.
"""
from __future__ import annotations

import argparse

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.infrastructure.db.bootstrap import ensure_collections
from app.infrastructure.db.mongo import MongoConnection
from app.repositories.note_repo import NOTES_COLLECTION
from app.repositories.user_repo import USERS_COLLECTION


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--quiet", action="store_true", help="No listar los índices resultantes")
    args = ap.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)
    mongo = MongoConnection(settings).connect()
    try:
        if not mongo.ping():
            raise SystemExit(f"Mongo no disponible en {settings.mongo_uri}")
        ensure_collections(mongo.db)
        print(f"Colecciones listas en '{settings.mongo_db}'.")
        if not args.quiet:
            for name in (USERS_COLLECTION, NOTES_COLLECTION):
                print(f"\n{name}:")
                for ix_name, info in mongo.db[name].index_information().items():
                    print(f"  - {ix_name}: {info.get('key')}")
    finally:
        mongo.close()


if __name__ == "__main__":
    main()
