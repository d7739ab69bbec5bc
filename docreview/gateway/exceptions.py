class GatewayError(Exception):
    """Base exception for generation-service failures."""


class GatewayTransportError(GatewayError):
    """Raised for a non-2xx response or an undecodable response body. Retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GatewayNetworkError(GatewayTransportError):
    """Raised when the service cannot be reached (connect error, timeout). Retried."""


class EmptyResultError(GatewayError):
    """Raised when a 2xx response lacks the expected payload. Not retried."""


class ResultValidationError(EmptyResultError):
    """Raised when the payload is present but does not match the declared schema."""
