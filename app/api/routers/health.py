"""Health e índice de endpoints (sin auth, sin prefijo de API)."""
from fastapi import APIRouter, Depends

from app.api.deps import get_container
from app.api.schemas.common import ok
from app.core.container import AppContainer
from app.core.time import iso, utc_now

router = APIRouter(tags=["Health"])  # no prefix to keep paths stable


@router.get("/health", response_model=dict, summary="Salud básica")
def health(container: AppContainer = Depends(get_container)):
    settings = container.settings
    return ok("Service is healthy", {
        "service": settings.app_name,
        "status": "ok",
        "timestamp": iso(utc_now()),
        "environment": settings.environment,
        "version": settings.app_version,
        "database": "connected" if container.db_ping() else "unreachable",
    })


@router.get("/", response_model=dict, summary="Índice de endpoints")
def index(container: AppContainer = Depends(get_container)):
    prefix = container.settings.api_prefix_normalized
    return ok(f"Welcome to {container.settings.app_name}", {
        "version": container.settings.app_version,
        "endpoints": {
            "health": "GET /health",
            "auth": {
                "signup": f"POST {prefix}/auth/signup",
                "verifyOtp": f"POST {prefix}/auth/verify-otp",
                "resendOtp": f"POST {prefix}/auth/resend-otp",
                "login": f"POST {prefix}/auth/login",
                "me": f"GET {prefix}/auth/me",
            },
            "notes": {
                "create": f"POST {prefix}/notes",
                "list": f"GET {prefix}/notes",
                "search": f"GET {prefix}/notes/search?q=",
                "stats": f"GET {prefix}/notes/stats",
                "get": f"GET {prefix}/notes/:id",
                "update": f"PUT {prefix}/notes/:id",
                "delete": f"DELETE {prefix}/notes/:id",
                "togglePin": f"PATCH {prefix}/notes/:id/pin",
                "toggleArchive": f"PATCH {prefix}/notes/:id/archive",
            },
        },
    })
