"""
Enveloppe JSON commune: toutes les réponses portent `success` et `timestamp`.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def envelope(success: bool, **fields: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success}
    body.update({k: v for k, v in fields.items() if v is not None})
    body["timestamp"] = utc_timestamp()
    return body


def ok(status_code: int = 200, **fields: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(envelope(True, **fields)))


def fail(status_code: int, error: str, headers: Optional[Dict[str, str]] = None, **fields: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope(False, error=error, **fields)),
        headers=headers,
    )
