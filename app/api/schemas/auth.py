"""
Esquemas Pydantic para operaciones de autenticación.

- Mantiene las validaciones y normalizaciones (p. ej. email en minúsculas).
- Todos los errores de campo se reportan juntos (400 VALIDATION_ERROR).
"""
import re

from pydantic import BaseModel, EmailStr, field_validator

FULL_NAME_RE = re.compile(r"[a-zA-Z\s\-']+")
PHONE_RE = re.compile(r"\+?[1-9]\d{0,15}")
PHONE_STRIP_RE = re.compile(r"[\s\-()]")
PASSWORD_RE = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&].*")
OTP_RE = re.compile(r"\d{6}")


def _normalize_email(v: EmailStr) -> str:
    return str(v).strip().lower()


class SignupPayload(BaseModel):
    fullName: str
    emailAddress: EmailStr
    phoneNumber: str
    password: str

    @field_validator("fullName")
    @classmethod
    def _full_name(cls, v: str) -> str:
        v = v.strip()
        if not 2 <= len(v) <= 50:
            raise ValueError("Full name must be between 2 and 50 characters")
        if not FULL_NAME_RE.fullmatch(v):
            raise ValueError("Full name can only contain letters, spaces, hyphens, and apostrophes")
        return v

    @field_validator("emailAddress")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return _normalize_email(v)

    @field_validator("phoneNumber")
    @classmethod
    def _phone(cls, v: str) -> str:
        # Se guarda sin espacios/guiones/paréntesis para que la unicidad sea real
        compact = PHONE_STRIP_RE.sub("", v.strip())
        if not PHONE_RE.fullmatch(compact):
            raise ValueError("Please provide a valid phone number")
        return compact

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not PASSWORD_RE.fullmatch(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, "
                "one number, and one special character"
            )
        return v


class VerifyOtpPayload(BaseModel):
    emailAddress: EmailStr
    otpCode: str

    @field_validator("emailAddress")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return _normalize_email(v)

    @field_validator("otpCode")
    @classmethod
    def _otp(cls, v: str) -> str:
        v = v.strip()
        if not OTP_RE.fullmatch(v):
            raise ValueError("OTP code must be exactly 6 digits")
        return v


class ResendOtpPayload(BaseModel):
    emailAddress: EmailStr

    @field_validator("emailAddress")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return _normalize_email(v)


class LoginPayload(BaseModel):
    emailAddress: EmailStr
    password: str

    @field_validator("emailAddress")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v
