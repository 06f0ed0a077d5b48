"""
Gestionnaires d'exceptions: toute erreur devient l'enveloppe JSON
{success: false, error, message?, timestamp}.
- StorefrontError: code et libellé portés par l'exception
- HTTPException Starlette: 404 / 405 (liste `allowed`) / 401 / 403 / 429
- RequestValidationError: 400
- Exception non gérée: 500 "Internal server error" (message et stack en développement)
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.errors import MethodNotAllowed, PaymentProcessorError, StorefrontError
from storefront.utils.responses import fail

logger = logging.getLogger(__name__)


def _is_dev(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.is_development)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        if isinstance(exc, PaymentProcessorError):
            if _is_dev(request):
                return fail(exc.status_code, exc.error, message=exc.message, details=exc.details())
            return fail(exc.status_code, exc.error, message=exc.message)
        if isinstance(exc, MethodNotAllowed):
            return fail(405, exc.error, allowed=exc.allowed, headers={"Allow": ", ".join(exc.allowed)})
        message = exc.message if exc.message != exc.error else None
        return fail(exc.status_code, exc.error, message=message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        headers = dict(exc.headers or {})
        if exc.status_code == 405:
            allowed = [m.strip() for m in headers.get("Allow", "").split(",") if m.strip()]
            return fail(405, "Method not allowed", allowed=allowed, headers=headers or None)
        if exc.status_code == 404:
            detail = str(exc.detail) if exc.detail and exc.detail != "Not Found" else None
            return fail(404, "Not found", message=detail, headers=headers or None)
        return fail(exc.status_code, str(exc.detail), headers=headers or None)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        if _is_dev(request):
            return fail(400, "Invalid request", details=exc.errors())
        return fail(400, "Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if _is_dev(request):
            return fail(
                500, "Internal server error",
                message=str(exc),
                stack=traceback.format_exception(type(exc), exc, exc.__traceback__),
            )
        return fail(500, "Internal server error")
