"""
Exceptions métier du storefront.
Chaque exception porte son code HTTP; les handlers (app_setup.exceptions) les
convertissent en enveloppe JSON {success, error, message, timestamp}.
"""
from typing import Any, Dict, List, Optional


class StorefrontError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.error)
        self.message = message or self.error


class InvalidArgument(StorefrontError):
    status_code = 400
    error = "Invalid argument"

    def __init__(self, error: str):
        super().__init__(error)
        self.error = error


class NotFound(StorefrontError):
    status_code = 404
    error = "Not found"

    def __init__(self, error: str = "Not found"):
        super().__init__(error)
        self.error = error


class WebhookVerificationError(StorefrontError):
    status_code = 400
    error = "Invalid signature"


class PaymentProcessorError(StorefrontError):
    """Erreur remontée par Stripe (après épuisement éventuel des retries)."""
    status_code = 500

    def __init__(self, error: str, cause: Exception):
        super().__init__(str(getattr(cause, "user_message", None) or cause))
        self.error = error
        self.cause = cause

    def details(self) -> Dict[str, Any]:
        return {
            "type": type(self.cause).__name__,
            "code": getattr(self.cause, "code", None),
            "statusCode": getattr(self.cause, "http_status", None),
            "requestId": getattr(self.cause, "request_id", None),
        }


class MethodNotAllowed(StorefrontError):
    status_code = 405
    error = "Method not allowed"

    def __init__(self, allowed: List[str]):
        super().__init__(self.error)
        self.allowed = allowed
