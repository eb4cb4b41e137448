"""HTTP Status Code Constants.

This module contains HTTP status code constants for clear and
type-safe handling of third-party API responses.
"""


class HTTPStatusCodes:
    """HTTP status code constants."""

    UNAUTHORIZED = 401
    FORBIDDEN = 403
    TOO_MANY_REQUESTS = 429

    @staticmethod
    def is_success(code: int) -> bool:
        """Check if status code indicates success (2xx)."""
        return 200 <= code < 300

    @staticmethod
    def is_server_error(code: int) -> bool:
        """Check if status code indicates server error (5xx)."""
        return 500 <= code < 600


class HTTPHeaders:
    """Common HTTP header names."""

    CONTENT_TYPE = "Content-Type"
    ACCEPT = "Accept"
    AUTHORIZATION = "Authorization"
    USER_AGENT = "User-Agent"
    RETRY_AFTER = "Retry-After"
    CLIENT_ID = "Client-ID"


class ContentTypes:
    """Common content type values."""

    JSON = "application/json"
    SPARQL_JSON = "application/sparql-results+json"
    PLAIN_TEXT = "text/plain"
