"""
Helpers de fecha/hora. Todo se maneja en UTC con datetimes timezone-aware.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

# Reloj inyectable: los servicios reciben un callable en lugar de llamar datetime.now()
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Asegura timezone-aware en UTC (Mongo devuelve naive si no se pide tz_aware)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 con sufijo Z (formato que consume el frontend)."""
    dt = as_utc(dt)
    if dt is None:
        return None
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
