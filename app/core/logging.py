"""
Configuración de logging para la aplicación e integración con Uvicorn.
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("notes").setLevel(resolved)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(resolved)
    # pymongo es muy verboso en DEBUG (heartbeats, selección de servidor)
    logging.getLogger("pymongo").setLevel(max(resolved, logging.WARNING))
