"""Configuración central de la aplicación (Pydantic Settings).

- Carga variables desde .env en la raíz del proyecto.
- Agrupa ajustes por área: App, CORS, Mongo, JWT, Hashing, OTP, Email, Rate limit, Notas.
"""
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resuelve el .env ubicado en la raíz del proyecto (independiente del CWD)
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """Conjunto de variables de configuración con valores por defecto razonables.

    Nota: los valores pueden sobreescribirse vía variables de entorno (.env).
    """
    # App
    app_name: str = "Notes App API"
    app_version: str = "1.0.0"
    api_prefix: str = "/api"
    environment: Literal["development", "production"] = "development"
    log_level: str = "INFO"

    # CORS (frontend servido aparte)
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5500"]
    cors_allow_any: bool = False  # Permite todos los orígenes (usa con cuidado)

    # Mongo
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "notes_app"
    mongo_tls: bool = False
    # TLS relax options (dev only)
    mongo_tls_insecure: bool = False
    mongo_tls_allow_invalid_hostnames: bool = False
    mongo_timeout_ms: int = 15000

    # Auth / JWT
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    jwt_issuer: str = "notes-app-api"
    jwt_audience: str = "notes-app-client"

    # Hashing de contraseñas (argon2id)
    argon2_time_cost: int = 2
    argon2_memory_cost: int = 51200
    argon2_parallelism: int = 2

    # Verificación por código (OTP)
    otp_expire_minutes: int = 10

    # Email / SMTP
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_pass: str | None = None
    smtp_from_email: str | None = None
    smtp_from_name: str = "Notes App"
    smtp_use_tls: bool = True
    smtp_timeout_seconds: int = 10

    # Rate limit (por IP + ruta) para endpoints públicos de auth
    rate_limit_enabled: bool = True
    auth_rate_limit_per_min: int = 20

    # Notas
    notes_default_limit: int = 50
    notes_max_limit: int = 100
    search_default_limit: int = 20
    popular_tags_limit: int = 10

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # no fallar si hay variables no usadas
    )

    # --- Utilidades derivadas / helpers ---
    @property
    def api_prefix_normalized(self) -> str:
        """Devuelve `api_prefix` con formato consistente.

        - Siempre inicia con '/'
        - Sin '/' final (excepto cuando es solo '/')
        - Si está vacío, devuelve ""
        """
        pref = (self.api_prefix or "").strip()
        if not pref:
            return ""
        if not pref.startswith('/'):
            pref = '/' + pref
        if len(pref) > 1 and pref.endswith('/'):
            pref = pref[:-1]
        return pref

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)


@lru_cache
def get_settings() -> Settings:
    """Instancia cacheada de Settings (se lee el entorno una sola vez)."""
    return Settings()
