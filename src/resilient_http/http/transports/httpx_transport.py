from __future__ import annotations

import httpx
import structlog

from ..errors import TransportError
from ..models import Request, Response
from .base import Transport, describe_error, outgoing_content, outgoing_headers

logger = structlog.get_logger(__name__)


class HttpxTransport(Transport):
    """General purpose transport backed by :class:`httpx.AsyncClient`"""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def send(self, request: Request) -> Response:
        build_kwargs = {}
        if request.timeout is not None:
            build_kwargs["timeout"] = request.timeout

        httpx_request = self._client.build_request(
            request.method,
            request.url,
            headers=outgoing_headers(request),
            content=outgoing_content(request),
            **build_kwargs,
        )

        try:
            httpx_response = await self._client.send(httpx_request, stream=True)
        except httpx.RequestError as e:
            logger.debug("httpx transport error", method=request.method, url=request.url, error=repr(e))
            raise TransportError(describe_error(e), request=request) from e

        async def read() -> bytes:
            try:
                return await httpx_response.aread()
            except httpx.RequestError as e:
                raise TransportError(describe_error(e), request=request) from e

        return Response(
            status_code=httpx_response.status_code,
            headers=httpx_response.headers.multi_items(),
            request=request,
            reader=read,
            closer=httpx_response.aclose,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
