from __future__ import annotations

from collections.abc import Iterable, Iterator

import structlog

from ..logging import get_correlation_id, get_trace_id
from .models import Request, Response

logger = structlog.get_logger(__name__)


class Interceptor:
    """
    Observer of the request lifecycle

    Hooks run synchronously, in registration order, once per attempt. They
    cannot abort a request; an exception raised by a hook propagates to the
    caller of the client.
    """

    def on_request_start(self, request: Request) -> None:
        """Called before every attempt is sent"""
        pass

    def on_request_end(self, request: Request, response: Response) -> None:
        """Called when an attempt produced a response, whatever its status"""
        pass

    def on_error(self, request: Request, error: BaseException) -> None:
        """Called when an attempt ended without a response

        This covers transport errors, which are retried, as well as unexpected
        exceptions and cancellation, which abort the request.
        """
        pass


class InterceptorChain:
    """Immutable ordered collection of interceptors"""

    def __init__(self, interceptors: Iterable[Interceptor] | None = None):
        self._interceptors = tuple(interceptors or ())

    def on_request_start(self, request: Request) -> None:
        for interceptor in self._interceptors:
            interceptor.on_request_start(request)

    def on_request_end(self, request: Request, response: Response) -> None:
        for interceptor in self._interceptors:
            interceptor.on_request_end(request, response)

    def on_error(self, request: Request, error: BaseException) -> None:
        for interceptor in self._interceptors:
            interceptor.on_error(request, error)

    def __iter__(self) -> Iterator[Interceptor]:
        return iter(self._interceptors)

    def __len__(self) -> int:
        return len(self._interceptors)


class LoggingInterceptor(Interceptor):
    """Log every attempt as structured events"""

    def __init__(self, log=None):
        self.log = log or logger

    def on_request_start(self, request: Request) -> None:
        self.log.info("HTTP request started", method=request.method, url=request.url)

    def on_request_end(self, request: Request, response: Response) -> None:
        self.log.info(
            "HTTP request completed",
            method=request.method,
            url=request.url,
            status_code=response.status_code,
        )

    def on_error(self, request: Request, error: BaseException) -> None:
        self.log.warning(
            "HTTP request error",
            method=request.method,
            url=request.url,
            error=str(error) or error.__class__.__name__,
        )


class CorrelationInterceptor(Interceptor):
    """Propagate the current correlation and trace IDs as outgoing headers"""

    def __init__(
        self,
        correlation_header: str = "X-Correlation-ID",
        trace_header: str = "X-Trace-ID",
    ):
        self.correlation_header = correlation_header
        self.trace_header = trace_header

    def on_request_start(self, request: Request) -> None:
        # Caller supplied headers win
        correlation_id = get_correlation_id()
        if correlation_id and self.correlation_header not in request.headers:
            request.headers[self.correlation_header] = correlation_id

        trace_id = get_trace_id()
        if trace_id and self.trace_header not in request.headers:
            request.headers[self.trace_header] = trace_id
