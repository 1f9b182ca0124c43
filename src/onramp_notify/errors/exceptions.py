"""Custom exception classes for the onramp notification API."""


class OnrampError(Exception):
    """Base exception for the service."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(OnrampError):
    """Request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(OnrampError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(OnrampError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class WebhookSignatureError(AuthenticationError):
    """Inbound webhook failed signature verification.

    The message is deliberately generic; the specific failed check is only logged.
    """

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)
        self.code = "INVALID_SIGNATURE"


class AuthorizationError(OnrampError):
    """Authenticated caller may not act on the requested resource."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__("AUTHORIZATION_ERROR", message, status_code=403)
