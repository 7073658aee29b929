"""Sobre común de respuesta: `{success, message, data?, error?}`."""
from typing import Any, Dict, Optional


def ok(message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body
