"""Persistencia de usuarios (colección `users`)."""
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import Conflict
from app.core.time import as_utc
from app.domain.users.schemas import UserRecord

USERS_COLLECTION = "users"


def _oid(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


def duplicate_conflict(err: DuplicateKeyError) -> Conflict:
    """Traduce el índice único que saltó (email/phone) a un Conflict con su código."""
    details = err.details or {}
    key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
    if "phoneNumber" in key_pattern or "uniq_phone" in str(err):
        return Conflict("User with this phone number already exists", error_code="PHONE_ALREADY_EXISTS")
    return Conflict("User with this email address already exists", error_code="EMAIL_ALREADY_EXISTS")


class UserRepository:
    def __init__(self, db: Database) -> None:
        self.coll = db[USERS_COLLECTION]

    def _one(self, filtro: Dict[str, Any]) -> Optional[UserRecord]:
        doc = self.coll.find_one(filtro)
        return UserRecord.from_doc(doc) if doc else None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Busca usuario por email (se normaliza a minúsculas)."""
        return self._one({"emailAddress": email.strip().lower()})

    def find_by_phone(self, phone: str) -> Optional[UserRecord]:
        return self._one({"phoneNumber": phone.strip()})

    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        oid = _oid(user_id)
        if oid is None:
            return None
        return self._one({"_id": oid})

    def insert(self, doc: Dict[str, Any]) -> UserRecord:
        """Inserta el usuario; un índice único violado se traduce a Conflict."""
        data = dict(doc)
        try:
            res = self.coll.insert_one(data)
        except DuplicateKeyError as e:
            raise duplicate_conflict(e) from e
        data["_id"] = res.inserted_id
        return UserRecord.from_doc(data)

    def _update(self, user_id: str, update: Dict[str, Any]) -> Optional[UserRecord]:
        oid = _oid(user_id)
        if oid is None:
            return None
        doc = self.coll.find_one_and_update({"_id": oid}, update, return_document=ReturnDocument.AFTER)
        return UserRecord.from_doc(doc) if doc else None

    def set_otp(self, user_id: str, code: str, expires_at: datetime) -> Optional[UserRecord]:
        """Guarda el código OTP y su expiración (sobrescribe cualquier código previo)."""
        return self._update(
            user_id,
            {"$set": {"emailVerificationOtp": code, "otpExpirationTime": as_utc(expires_at)}},
        )

    def mark_verified(self, user_id: str) -> Optional[UserRecord]:
        """Marca email verificado y elimina datos del ciclo OTP."""
        return self._update(
            user_id,
            {
                "$set": {"isEmailVerified": True},
                "$unset": {"emailVerificationOtp": "", "otpExpirationTime": ""},
            },
        )

    def touch_last_login(self, user_id: str, when: datetime) -> Optional[UserRecord]:
        return self._update(user_id, {"$set": {"lastLoginAt": as_utc(when)}})

    def set_active(self, user_id: str, active: bool) -> Optional[UserRecord]:
        """Activa/desactiva la cuenta (único mecanismo para invalidar tokens vigentes)."""
        return self._update(user_id, {"$set": {"isAccountActive": bool(active)}})
