from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Request, Response


class HttpClientError(Exception):
    """Base exception for the HTTP client"""

    pass


class RequestConstructionError(HttpClientError, ValueError):
    """Raised when a request cannot be built from the given method, URL or body"""

    def __init__(self, reason: str, method: str | None = None, url: str | None = None):
        self.reason = reason
        self.method = method
        self.url = url
        super().__init__(f"Invalid request: {reason}")


class TransportError(HttpClientError):
    """Raised by a transport when a single attempt fails to produce a response"""

    def __init__(self, message: str, request: Request | None = None):
        self.request = request
        super().__init__(message)


class RetriesExhaustedError(TransportError):
    """Raised when transport errors were accumulated across the attempts of one request

    The message is the comma-joined list of the individual error messages.
    ``response`` holds the last response obtained, or None when the final
    attempt itself failed at the transport level.
    """

    def __init__(
        self,
        errors: list[str],
        attempts: int,
        request: Request | None = None,
        response: Response | None = None,
    ):
        self.errors = list(errors)
        self.attempts = attempts
        self.response = response
        super().__init__(",".join(self.errors), request=request)


class HTTPStatusError(HttpClientError):
    """Raised by Response.raise_for_status for 4xx and 5xx responses"""

    def __init__(self, response: Response):
        self.response = response
        self.status_code = response.status_code
        request = response.request
        target = f"{request.method} {request.url}" if request else "Request"
        super().__init__(f"{target} returned status {response.status_code}")
