"""Rutas de autenticación: registro, verificación por código, reenvío, login y perfil."""
from fastapi import APIRouter, Depends, status

from app.api.deps import get_auth_service, get_current_user, rate_limited
from app.api.schemas.auth import LoginPayload, ResendOtpPayload, SignupPayload, VerifyOtpPayload
from app.api.schemas.common import ok
from app.domain.users.schemas import UserRecord
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/signup",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited)],
    summary="Registrar usuario",
    description="Crea la cuenta sin verificar y envía el código OTP por correo.",
)
def signup(payload: SignupPayload, service: AuthService = Depends(get_auth_service)):
    res = service.signup(
        full_name=payload.fullName,
        email_address=payload.emailAddress,
        phone_number=payload.phoneNumber,
        password=payload.password,
    )
    return ok("User registered successfully. Please check your email for verification code.", res)


@router.post(
    "/verify-otp",
    response_model=dict,
    dependencies=[Depends(rate_limited)],
    summary="Verificar email con código",
    description="Valida el código OTP, marca el email como verificado y emite el token de sesión.",
)
def verify_otp(payload: VerifyOtpPayload, service: AuthService = Depends(get_auth_service)):
    res = service.verify_otp(email_address=payload.emailAddress, otp_code=payload.otpCode)
    return ok("Email verified successfully. Welcome to Notes App!", res)


@router.post(
    "/resend-otp",
    response_model=dict,
    dependencies=[Depends(rate_limited)],
    summary="Reenviar código",
    description="Emite un código nuevo (invalida el anterior). Rechazado si el email ya está verificado.",
)
def resend_otp(payload: ResendOtpPayload, service: AuthService = Depends(get_auth_service)):
    res = service.resend_otp(email_address=payload.emailAddress)
    return ok("OTP code resent successfully. Please check your email.", res)


@router.post(
    "/login",
    response_model=dict,
    dependencies=[Depends(rate_limited)],
    summary="Login con email y contraseña",
)
def login(payload: LoginPayload, service: AuthService = Depends(get_auth_service)):
    res = service.login(email_address=payload.emailAddress, password=payload.password)
    return ok("Login successful", res)


@router.get(
    "/me",
    response_model=dict,
    summary="Perfil básico del usuario",
    description="Devuelve información básica del usuario autenticado.",
)
def me(user: UserRecord = Depends(get_current_user)):
    return ok("User profile retrieved successfully", {"user": user.public()})
