from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from ..models import ReplayableBody, Request, Response


class Transport(ABC):
    """Sends exactly one physical attempt of a request"""

    @abstractmethod
    async def send(self, request: Request) -> Response:
        """
        Send the request once

        Args:
            request: Request to send, its body positioned where sending starts

        Returns:
            Response with an unread body

        Raises:
            TransportError: If the connection, timeout or protocol handling fails
        """
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release pooled connections owned by the transport"""
        pass

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


def outgoing_headers(request: Request) -> httpx.Headers:
    """Copy of the request headers with connection reuse disabled when asked"""
    headers = httpx.Headers(request.headers)
    if request.close:
        headers["Connection"] = "close"
    return headers


def outgoing_content(request: Request) -> bytes | None:
    """Remaining body bytes from the current offset"""
    if request.body is None:
        return None
    if not isinstance(request.body, ReplayableBody):
        request.body = ReplayableBody.snapshot(request.body)
    return request.body.read()


def describe_error(error: BaseException) -> str:
    """Readable message for backend exceptions, some of which stringify to ''"""
    message = str(error)
    return message if message else error.__class__.__name__
