"""
Emisión y resolución de JWTs de sesión (Bearer).

- Sin refresh ni rotación: volver a hacer login es la única renovación.
- Sin lista de revocación: desactivar la cuenta (`isAccountActive=False`) es el
  único interruptor, y se comprueba en cada request releyendo el usuario.
"""
from datetime import timedelta
from typing import Any, Dict
from uuid import uuid4

import jwt

from app.core.exceptions import AccountDeactivated, TokenExpired, TokenMalformed, Unauthenticated
from app.core.time import Clock, utc_now
from app.domain.users.schemas import UserRecord
from app.repositories.user_repo import UserRepository


class TokenService:
    def __init__(
        self,
        users: UserRepository,
        *,
        secret: str | None,
        algorithm: str = "HS256",
        expire_days: int = 7,
        issuer: str = "notes-app-api",
        audience: str = "notes-app-client",
        clock: Clock = utc_now,
    ) -> None:
        if not secret:
            raise RuntimeError("JWT_SECRET no configurado")
        self.users = users
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = timedelta(days=expire_days)
        self.issuer = issuer
        self.audience = audience
        self.clock = clock

    def issue(self, user: UserRecord) -> str:
        """
        Genera un JWT firmado.
        Claims: sub/userId, emailAddress, isEmailVerified, iss, aud, iat, exp, jti.
        """
        now = self.clock()
        payload = {
            "sub": user.id,
            "userId": user.id,
            "emailAddress": user.email_address,
            "isEmailVerified": user.is_email_verified,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int((now + self.lifetime).timestamp()),
            "jti": str(uuid4()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """Valida firma, forma, emisor, audiencia y expiración. Devuelve payload."""
        try:
            payload = jwt.decode(
                token,
                key=self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                # exp/iat se evalúan contra el reloj inyectado, no contra el de PyJWT
                options={"require": ["exp", "sub"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as e:
            raise TokenMalformed() from e
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise TokenMalformed()
        if self.clock().timestamp() > exp:
            raise TokenExpired()
        return payload

    def resolve(self, token: str) -> UserRecord:
        """Token -> usuario vigente. Relee el registro para aplicar desactivaciones al instante."""
        payload = self.decode(token)
        user = self.users.get_by_id(str(payload.get("sub")))
        if user is None:
            raise Unauthenticated("Invalid token. User not found.", error_code="INVALID_TOKEN")
        if not user.is_account_active:
            raise AccountDeactivated()
        return user
