"""Activa o desactiva una cuenta por email.

Uso típico:
  PYTHONPATH=. python scripts/set_account_active.py --email ana@example.com --inactive --yes

Desactivar la cuenta invalida de inmediato todos sus tokens vigentes: cada
request relee el usuario y rechaza con ACCOUNT_DEACTIVATED.
Dry‑run por defecto (muestra el estado actual). Confirma con --yes.
"""
from __future__ import annotations

import argparse

from app.core.config import get_settings
from app.infrastructure.db.mongo import MongoConnection
from app.repositories.user_repo import UserRepository


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True, help="Email de la cuenta")
    state = ap.add_mutually_exclusive_group(required=True)
    state.add_argument("--active", dest="active", action="store_true", help="Reactivar la cuenta")
    state.add_argument("--inactive", dest="active", action="store_false", help="Desactivar la cuenta")
    ap.add_argument("--yes", action="store_true", help="Confirmar y ejecutar (por defecto es dry-run)")
    args = ap.parse_args()

    mongo = MongoConnection(get_settings()).connect()
    try:
        users = UserRepository(mongo.db)
        user = users.find_by_email(args.email)
        if user is None:
            raise SystemExit(f"No existe usuario con email {args.email}")

        print(f"Usuario {user.id} | {user.full_name} | activo={user.is_account_active}")
        if user.is_account_active == args.active:
            print("Sin cambios: la cuenta ya está en ese estado.")
            return
        if not args.yes:
            print(f"\nDry‑run. Añade --yes para dejar activo={args.active}.")
            return

        updated = users.set_active(user.id, args.active)
        print(f"Listo: activo={updated.is_account_active if updated else '?'}")
    finally:
        mongo.close()


if __name__ == "__main__":
    main()
