"""
Webhook error taxonomy.

Every error raised on the webhook path maps to exactly one HTTP status and one
public message. Nothing else about the failure is returned to the caller.
"""

from fastapi import status


class WebhookError(Exception):
    """Base class for errors rendered as ``{"status": "error", "message": ...}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal Server Error"

    def __init__(self, detail: str | None = None):
        """
        Args:
            detail: Server-side explanation, logged but never sent to the caller.
        """
        super().__init__(detail or self.message)
        self.detail = detail


class MethodNotAllowed(WebhookError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    message = "Method Not Allowed"


class ServerMisconfigured(WebhookError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Server Misconfigured"


class ValidationError(WebhookError):
    status_code = 422
    message = "Invalid Payload"


class SignatureInvalid(WebhookError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid Signature"


class LedgerUnavailable(WebhookError):
    """The settlement store could not be reached; the provider is expected to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Ledger Unavailable"


class SettlementNotFound(WebhookError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Settlement Not Found"
