from __future__ import annotations

import asyncio
import inspect

import aiohttp
import structlog

from ..errors import TransportError
from ..models import Request, Response
from .base import Transport, describe_error, outgoing_content, outgoing_headers

logger = structlog.get_logger(__name__)


class AiohttpTransport(Transport):
    """High-throughput transport backed by :class:`aiohttp.ClientSession`

    The session is created on first use so that it binds to the running
    event loop.
    """

    def __init__(self, session: aiohttp.ClientSession | None = None, timeout: float = 30.0):
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    async def send(self, request: Request) -> Response:
        request_kwargs = {}
        if request.timeout is not None:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=request.timeout)

        session = self._get_session()
        try:
            client_response = await session.request(
                request.method,
                request.url,
                headers=list(outgoing_headers(request).multi_items()),
                data=outgoing_content(request),
                **request_kwargs,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("aiohttp transport error", method=request.method, url=request.url, error=repr(e))
            raise TransportError(describe_error(e), request=request) from e

        async def read() -> bytes:
            try:
                return await client_response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(describe_error(e), request=request) from e

        async def release() -> None:
            # Older aiohttp releases return an awaitable from release()
            result = client_response.release()
            if inspect.isawaitable(result):
                await result

        return Response(
            status_code=client_response.status,
            headers=list(client_response.headers.items()),
            request=request,
            reader=read,
            closer=release,
        )

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
