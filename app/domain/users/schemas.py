"""
Registro plano de usuario (colección `users`).

Reglas clave:
- Campos en camelCase en Mongo y en la API; snake_case en Python (alias).
- `emailAddress` se guarda siempre en minúsculas; `emailAddress` y `phoneNumber` son únicos.
- `emailVerificationOtp`/`otpExpirationTime` sólo existen durante un ciclo de verificación abierto.
- `passwordHash` y los campos OTP nunca salen en `public()`.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.time import as_utc, iso


class UserRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(alias="_id")
    full_name: str
    email_address: str
    phone_number: str
    password_hash: str
    is_email_verified: bool = False
    is_account_active: bool = True
    email_verification_otp: Optional[str] = None
    otp_expiration_time: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    account_created_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def _str_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("otp_expiration_time", "last_login_at", "account_created_at", mode="after")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "UserRecord":
        return cls.model_validate(doc)

    @property
    def has_pending_otp(self) -> bool:
        return bool(self.email_verification_otp and self.otp_expiration_time)

    def public(self) -> Dict[str, Any]:
        """Respuesta pública de usuario (sin secretos)."""
        out: Dict[str, Any] = {
            "id": self.id,
            "fullName": self.full_name,
            "emailAddress": self.email_address,
            "phoneNumber": self.phone_number,
            "isEmailVerified": self.is_email_verified,
            "accountCreatedAt": iso(self.account_created_at),
        }
        if self.last_login_at is not None:
            out["lastLoginAt"] = iso(self.last_login_at)
        return out
