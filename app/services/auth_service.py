"""
Casos de uso de autenticación: registro, verificación por código, reenvío, login y perfil.

El envío de correo nunca revierte el registro: si falla, la cuenta queda sin
verificar y el cliente puede pedir reenvío.
"""
import logging
from typing import Any, Dict

from app.core.exceptions import AccountDeactivated, AlreadyVerified, Conflict, InvalidOtp, NotFound, Unauthenticated
from app.core.time import Clock, utc_now
from app.domain.users.schemas import UserRecord
from app.infrastructure.email.email_client import EmailClient
from app.infrastructure.security.passwords import PasswordService
from app.repositories.user_repo import UserRepository
from app.services.otp_service import OtpService
from app.services.token_service import TokenService

_log = logging.getLogger("notes.auth")


def _user_not_found() -> NotFound:
    return NotFound("User not found", error_code="USER_NOT_FOUND")


def _invalid_credentials() -> Unauthenticated:
    return Unauthenticated("Invalid email or password", error_code="INVALID_CREDENTIALS")


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        otp: OtpService,
        tokens: TokenService,
        passwords: PasswordService,
        email: EmailClient,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self.users = users
        self.otp = otp
        self.tokens = tokens
        self.passwords = passwords
        self.email = email
        self.clock = clock

    def _session(self, user: UserRecord) -> Dict[str, Any]:
        return {"user": user.public(), "authToken": self.tokens.issue(user), "tokenType": "Bearer"}

    def signup(self, *, full_name: str, email_address: str, phone_number: str, password: str) -> Dict[str, Any]:
        """Crea el usuario sin verificar, emite el OTP y lo envía por correo."""
        email_address = email_address.strip().lower()
        if self.users.find_by_email(email_address):
            raise Conflict("User with this email address already exists", error_code="EMAIL_ALREADY_EXISTS")
        if self.users.find_by_phone(phone_number):
            raise Conflict("User with this phone number already exists", error_code="PHONE_ALREADY_EXISTS")

        user = self.users.insert({
            "fullName": full_name.strip(),
            "emailAddress": email_address,
            "phoneNumber": phone_number.strip(),
            "passwordHash": self.passwords.hash(password),
            "isEmailVerified": False,
            "isAccountActive": True,
            "accountCreatedAt": self.clock(),
        })
        _log.info("Usuario registrado user_id=%s", user.id)

        code = self.otp.issue(user)
        email_sent = self.email.send_otp_email(
            user.email_address, user.full_name, code, int(self.otp.ttl.total_seconds() // 60)
        )
        return {"user": user.public(), "emailSent": email_sent, "requiresEmailVerification": True}

    def verify_otp(self, *, email_address: str, otp_code: str) -> Dict[str, Any]:
        user = self.users.find_by_email(email_address)
        if user is None:
            raise _user_not_found()
        if user.is_email_verified:
            raise AlreadyVerified()
        if not self.otp.verify(user, otp_code):
            raise InvalidOtp()

        user = self.otp.mark_verified(user)
        session = self._session(user)
        # La bienvenida es cortesía: su fallo ya queda registrado por el cliente de correo
        self.email.send_welcome_email(user.email_address, user.full_name)
        return session

    def resend_otp(self, *, email_address: str) -> Dict[str, Any]:
        user = self.users.find_by_email(email_address)
        if user is None:
            raise _user_not_found()
        code = self.otp.issue(user)
        email_sent = self.email.send_otp_email(
            user.email_address, user.full_name, code, int(self.otp.ttl.total_seconds() // 60)
        )
        return {"emailSent": email_sent}

    def login(self, *, email_address: str, password: str) -> Dict[str, Any]:
        user = self.users.find_by_email(email_address)
        if user is None:
            raise _invalid_credentials()
        if not user.is_account_active:
            raise AccountDeactivated()
        if not self.passwords.verify(password, user.password_hash):
            raise _invalid_credentials()

        user = self.users.touch_last_login(user.id, self.clock()) or user
        _log.info("Login user_id=%s", user.id)
        return self._session(user)
