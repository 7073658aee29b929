"""
Rate limit muy simple en memoria (por identificador + ruta), ventana deslizante.

Uso típico:
- Endpoint público: limiter.allow((ip, "/auth/login"), limit=20, window_seconds=60)

Vive dentro del contenedor de la app (una instancia por proceso); no se
comparte entre workers. Las claves sin intentos dentro de la ventana se
purgan como mucho una vez por ventana.
"""
from threading import Lock
from time import monotonic
from typing import Callable, Dict, Optional, Tuple


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = monotonic) -> None:
        self._clock = clock
        self._bucket: Dict[Tuple[str, str], list[float]] = {}
        self._last_sweep: Optional[float] = None
        self._lock = Lock()

    def _sweep(self, now: float, window_seconds: int) -> None:
        if self._last_sweep is not None and now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now
        stale = [k for k, q in self._bucket.items() if not q or now - q[-1] >= window_seconds]
        for k in stale:
            del self._bucket[k]

    def allow(self, key: Tuple[str, str], limit: int = 5, window_seconds: int = 60) -> bool:
        """Devuelve True si se permite la acción y registra el intento.

        key: (identificador, ruta)
        limit: máximo de intentos dentro de la ventana
        window_seconds: ventana de tiempo en segundos
        """
        now = self._clock()
        with self._lock:
            self._sweep(now, window_seconds)
            q = self._bucket.setdefault(key, [])
            # elimina timestamps fuera de ventana
            q[:] = [t for t in q if now - t < window_seconds]
            if len(q) >= limit:
                return False
            q.append(now)
            return True

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._bucket)

    def reset(self) -> None:
        """Limpia el bucket (útil en tests o reinicios)."""
        with self._lock:
            self._bucket.clear()
            self._last_sweep = None
