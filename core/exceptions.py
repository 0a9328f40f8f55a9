"""Custom exception hierarchy for the Apps Script proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class RequestTooLarge(ProxyError):
    """Request body exceeds size limit.

    Attributes:
        size: Size of the rejected body in bytes
        limit: Configured maximum body size in bytes
    """

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Request body too large ({size} > {limit} bytes)")
        self.size = size
        self.limit = limit


class InvalidJSON(ProxyError):
    """Request body is not valid JSON.

    Attributes:
        raw_text: The body as received, decoded leniently for logging
    """

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text
