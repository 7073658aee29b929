"""
Máquina de estados de verificación de email por código (OTP).

Estados por usuario:
    UNVERIFIED_NO_OTP -> UNVERIFIED_OTP_PENDING -> VERIFIED
`issue` (re)entra a UNVERIFIED_OTP_PENDING sobrescribiendo el código previo.
`verify` es de sólo lectura; la transición a VERIFIED es `mark_verified`.

Frontera de expiración: el código es válido mientras `now <= otpExpirationTime`;
sólo `now > otpExpirationTime` cuenta como expirado.
"""
import enum
import logging
import secrets
from datetime import timedelta

from app.core.exceptions import AlreadyVerified, NotFound
from app.core.time import Clock, utc_now
from app.domain.users.schemas import UserRecord
from app.repositories.user_repo import UserRepository

_log = logging.getLogger("notes.auth.otp")


class OtpState(str, enum.Enum):
    UNVERIFIED_NO_OTP = "unverified_no_otp"
    UNVERIFIED_OTP_PENDING = "unverified_otp_pending"
    VERIFIED = "verified"


def otp_state(user: UserRecord) -> OtpState:
    if user.is_email_verified:
        return OtpState.VERIFIED
    if user.has_pending_otp:
        return OtpState.UNVERIFIED_OTP_PENDING
    return OtpState.UNVERIFIED_NO_OTP


def generate_numeric_code(length: int = 6) -> str:
    """Código uniforme en [0, 10^length), con ancho fijo (puede empezar con 0)."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


class OtpService:
    def __init__(
        self,
        users: UserRepository,
        *,
        ttl_minutes: int = 10,
        length: int = 6,
        clock: Clock = utc_now,
    ) -> None:
        self.users = users
        self.ttl = timedelta(minutes=ttl_minutes)
        self.length = length
        self.clock = clock

    def issue(self, user: UserRecord) -> str:
        """Genera y persiste un código nuevo; devuelve el texto plano para enviarlo.

        Raises:
            AlreadyVerified: si el usuario ya completó la verificación.
        """
        if otp_state(user) is OtpState.VERIFIED:
            raise AlreadyVerified()
        code = generate_numeric_code(self.length)
        expires_at = self.clock() + self.ttl
        if self.users.set_otp(user.id, code, expires_at) is None:
            raise NotFound("User not found", error_code="USER_NOT_FOUND")
        _log.info("OTP emitido user_id=%s expires_at=%s", user.id, expires_at.isoformat())
        return code

    def verify(self, user: UserRecord, candidate: str) -> bool:
        """Valida el código sin efectos secundarios."""
        if not user.has_pending_otp:
            return False
        if self.clock() > user.otp_expiration_time:
            return False
        return user.email_verification_otp == candidate

    def mark_verified(self, user: UserRecord) -> UserRecord:
        updated = self.users.mark_verified(user.id)
        if updated is None:
            raise NotFound("User not found", error_code="USER_NOT_FOUND")
        _log.info("Email verificado user_id=%s", user.id)
        return updated
