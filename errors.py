# ===================================
# errors.py - Fetch Error Taxonomy
# ===================================

from typing import Optional


class FetchError(Exception):
    """Base class for every failure surfaced by the stock client"""

    description = "Fetch failed"

    def __init__(self, description: Optional[str] = None):
        if description is not None:
            self.description = description
        super().__init__(self.description)


class InvalidEndpointError(FetchError):
    description = "Invalid URL"


class TransportError(FetchError):
    """Upstream answered with a non-2xx status code"""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Server error with status code: {status_code}")


class NoDataError(FetchError):
    description = "No data received"


class DecodingError(FetchError):
    description = "Failed to decode response"


class RateLimitedError(FetchError):
    description = "Rate limit exceeded. Please wait before making more requests."


class UnauthorizedError(FetchError):
    description = "Invalid API key. Please check your configuration."


class ApiError(FetchError):
    """Upstream embedded an error message in an otherwise successful response"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnknownFetchError(FetchError):
    """Wraps lower-level transport exceptions (DNS, connection reset, timeouts)"""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Unknown error: {cause}")
