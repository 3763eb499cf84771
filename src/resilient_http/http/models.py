from __future__ import annotations

import io
import json
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import IO, Any, Union

import httpx

from .errors import HTTPStatusError, HttpClientError, RequestConstructionError

HeaderTypes = Union[httpx.Headers, Mapping[str, str], Iterable[tuple[str, str]], None]
BodySource = Union[bytes, bytearray, memoryview, str, IO[bytes]]

_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


class ReplayableBody:
    """In-memory snapshot of a request body that can be resent from offset 0 any number of times"""

    def __init__(self, content: bytes):
        self._content = bytes(content)
        self._reader = io.BytesIO(self._content)

    @classmethod
    def snapshot(cls, source: BodySource) -> ReplayableBody:
        """Read the whole body source once and keep it in memory"""
        if isinstance(source, ReplayableBody):
            return source
        if isinstance(source, str):
            return cls(source.encode("utf-8"))
        if isinstance(source, (bytes, bytearray, memoryview)):
            return cls(bytes(source))
        if callable(getattr(source, "read", None)):
            try:
                data = source.read()
            except OSError as e:
                raise RequestConstructionError(f"failed to read request body: {e}") from e
            if isinstance(data, str):
                data = data.encode("utf-8")
            if not isinstance(data, (bytes, bytearray, memoryview)):
                raise RequestConstructionError(f"body reader returned {type(data).__name__}, expected bytes")
            return cls(bytes(data))
        raise RequestConstructionError(f"unsupported body type {type(source).__name__}")

    @property
    def content(self) -> bytes:
        return self._content

    def read(self, size: int = -1) -> bytes:
        return self._reader.read(size)

    def tell(self) -> int:
        return self._reader.tell()

    def rewind(self) -> None:
        self._reader.seek(0)

    def __len__(self) -> int:
        return len(self._content)

    def __repr__(self) -> str:
        return f"<ReplayableBody size={len(self._content)} offset={self.tell()}>"


def _is_body_source(body: Any) -> bool:
    if isinstance(body, (bytes, bytearray, memoryview, str, ReplayableBody)):
        return True
    return callable(getattr(body, "read", None))


@dataclass
class Request:
    """One logical HTTP request, sent one or more times by the executor"""

    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: BodySource | ReplayableBody | None = None
    close: bool = False
    timeout: float | None = None

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        body: BodySource | None = None,
        headers: HeaderTypes = None,
        close: bool = False,
        timeout: float | None = None,
    ) -> Request:
        """
        Build a validated request

        Raises:
            RequestConstructionError: If the method, URL, headers or body are malformed
        """
        if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
            raise RequestConstructionError(f"invalid method {method!r}", method=method, url=url)

        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise RequestConstructionError(f"invalid URL {url!r}: {e}", method=method, url=url) from e

        if parsed.scheme not in ("http", "https"):
            raise RequestConstructionError(f"unsupported URL scheme in {url!r}", method=method, url=url)
        if not parsed.host:
            raise RequestConstructionError(f"missing host in URL {url!r}", method=method, url=url)

        try:
            request_headers = httpx.Headers(headers)
        except (TypeError, ValueError) as e:
            raise RequestConstructionError(f"invalid headers: {e}", method=method, url=url) from e

        if body is not None and not _is_body_source(body):
            raise RequestConstructionError(f"unsupported body type {type(body).__name__}", method=method, url=url)

        return cls(
            method=method.upper(),
            url=str(parsed),
            headers=request_headers,
            body=body,
            close=close,
            timeout=timeout,
        )

    @property
    def content(self) -> bytes | None:
        """Buffered body bytes, available once the body has been snapshotted"""
        if isinstance(self.body, ReplayableBody):
            return self.body.content
        return None


class ResponseNotReadError(HttpClientError):
    """Raised when the body of a streaming response is accessed before aread()"""

    def __init__(self):
        super().__init__("Response body has not been read, call 'await response.aread()' first")


class Response:
    """
    HTTP response returned by a transport

    The body is read lazily through the transport supplied reader. A response
    must be read or closed to release the underlying connection.
    """

    def __init__(
        self,
        status_code: int,
        headers: HeaderTypes = None,
        request: Request | None = None,
        content: bytes | None = None,
        reader: Callable[[], Awaitable[bytes]] | None = None,
        closer: Callable[[], Awaitable[None]] | None = None,
    ):
        self.status_code = status_code
        self.headers = httpx.Headers(headers)
        self.request = request
        self._content = content
        self._reader = reader
        self._closer = closer
        self._closed = False

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def content(self) -> bytes:
        if self._content is None:
            raise ResponseNotReadError()
        return self._content

    @property
    def encoding(self) -> str:
        content_type = self.headers.get("content-type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip("\"'")
        return "utf-8"

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding, errors="replace")

    def json(self, **kwargs: Any) -> Any:
        return json.loads(self.content, **kwargs)

    async def aread(self) -> bytes:
        """Read the full body and release the underlying connection, also when the read fails"""
        if self._content is None:
            if self._closed:
                raise HttpClientError("Cannot read a response that was closed before being read")
            try:
                self._content = await self._reader() if self._reader else b""
            finally:
                await self.aclose()
        return self._content

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._closer:
            await self._closer()

    def raise_for_status(self) -> Response:
        if self.status_code >= 400:
            raise HTTPStatusError(self)
        return self

    async def __aenter__(self) -> Response:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
