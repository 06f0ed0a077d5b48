from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import time


def _client_key(req: Request) -> str:
    # Pas de session côté storefront: IP + chemin
    forwarded = (req.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    ip = forwarded or (req.client.host if req.client else "local")
    return f"ip:{ip}:{req.url.path}"


def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance FastAPI de limitation de débit.
    - LOCAL_RATE_LIMIT_FALLBACK: fenêtre glissante en mémoire (par process).
    - rate_limit_enabled=False (lifespan): aucun contrôle.
    - Sinon fastapi-limiter (Redis) si initialisé.
    """
    async def _dep(request: Request, response: Response):
        settings = getattr(request.app.state, "settings", None)

        if settings is not None and settings.local_rate_limit_fallback:
            now = time.time()
            key = _client_key(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return _client_key(req)
        return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    settings = getattr(request.app.state, "settings", None)

    from fastapi_limiter import FastAPILimiter
    ready = getattr(FastAPILimiter, "redis", None) is not None

    return {
        "enabled": bool(enabled) if enabled is not None else None,
        "ready": ready,
        "backend": "redis" if ready else ("memory" if settings and settings.local_rate_limit_fallback else None),
    }
