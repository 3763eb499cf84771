from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache

import structlog

from .backoff import Backoff
from .errors import RetriesExhaustedError, TransportError
from .executor import RetryingExecutor
from .interceptors import Interceptor, InterceptorChain
from .models import BodySource, HeaderTypes, Request, Response
from .options import (
    Option,
    apply_options,
    with_backend,
    with_close_connection,
    with_interceptors,
    with_retrier,
    with_retry_count,
    with_timeout,
    with_transport,
)
from .transports import Transport, make_transport

logger = structlog.get_logger(__name__)


class HttpClient:
    """Verb based HTTP client with retry, backoff and interceptor support"""

    def __init__(self, *options: Option):
        self.config = apply_options(*options)
        self._owns_transport = self.config.transport is None
        self.transport = self.config.transport or make_transport(self.config.backend, timeout=self.config.timeout)
        self.interceptors = InterceptorChain(self.config.interceptors)
        self._executor = RetryingExecutor(
            self.transport,
            retry_count=self.config.retry_count,
            retrier=self.config.retrier,
            interceptors=self.interceptors,
        )

    async def get(self, url: str, headers: HeaderTypes = None) -> Response:
        """Make GET request"""
        return await self.request("GET", url, headers=headers)

    async def post(self, url: str, body: BodySource | None = None, headers: HeaderTypes = None) -> Response:
        """Make POST request"""
        return await self.request("POST", url, body=body, headers=headers)

    async def put(self, url: str, body: BodySource | None = None, headers: HeaderTypes = None) -> Response:
        """Make PUT request"""
        return await self.request("PUT", url, body=body, headers=headers)

    async def patch(self, url: str, body: BodySource | None = None, headers: HeaderTypes = None) -> Response:
        """Make PATCH request"""
        return await self.request("PATCH", url, body=body, headers=headers)

    async def delete(self, url: str, headers: HeaderTypes = None) -> Response:
        """Make DELETE request"""
        return await self.request("DELETE", url, headers=headers)

    async def request(
        self,
        method: str,
        url: str,
        body: BodySource | None = None,
        headers: HeaderTypes = None,
    ) -> Response:
        """
        Build and execute a request, returning the response with its body read

        Raises:
            RequestConstructionError: If method, URL, headers or body are malformed
            RetriesExhaustedError: If the request kept failing at the transport level
        """
        request = Request.build(method, url, body=body, headers=headers)

        try:
            response = await self.execute(request)
        except RetriesExhaustedError as e:
            if e.response is not None:
                try:
                    await e.response.aread()
                except TransportError as read_error:
                    # The aggregated retry error stays the one reported
                    logger.warning(
                        "Failed to read response body after retries",
                        method=request.method,
                        url=request.url,
                        error=str(read_error),
                    )
            raise

        await response.aread()
        return response

    async def execute(self, request: Request) -> Response:
        """Execute a prepared request; the returned response is unread and must be read or closed"""
        if self.config.close_connection:
            request.close = True
        return await self._executor.execute(request)

    async def aclose(self) -> None:
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


def create_http_client(
    timeout: float = 30.0,
    retry_count: int = 0,
    retrier: Backoff | None = None,
    transport: Transport | None = None,
    interceptors: Iterable[Interceptor] | None = None,
    close_connection: bool = False,
    backend: str = "httpx",
) -> HttpClient:
    """Factory function to create HTTP client"""
    options = [
        with_timeout(timeout),
        with_retry_count(retry_count),
        with_close_connection(close_connection),
        with_backend(backend),
    ]
    if retrier is not None:
        options.append(with_retrier(retrier))
    if transport is not None:
        options.append(with_transport(transport))
    if interceptors is not None:
        options.append(with_interceptors(interceptors))
    return HttpClient(*options)


@lru_cache()
def get_http_client() -> HttpClient:
    """Get the shared HTTP client configured from environment settings

    The client is bound to the event loop it is first used in.
    """
    from ..config import get_settings, options_from_settings

    settings = get_settings()
    logger.info(
        "Creating shared HTTP client",
        transport=settings.transport,
        retry_count=settings.retry_count,
        backoff_strategy=settings.backoff_strategy,
    )
    return HttpClient(*options_from_settings(settings))
