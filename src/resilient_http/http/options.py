"""Configuration options applied once when a client is built."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .backoff import Backoff, NoBackoff
from .interceptors import Interceptor
from .transports import TRANSPORTS, Transport


@dataclass
class ClientOptions:
    """Mutable builder the options are applied to"""

    timeout: float = 30.0
    retry_count: int = 0
    retrier: Backoff = field(default_factory=NoBackoff)
    transport: Transport | None = None
    backend: str = "httpx"
    interceptors: list[Interceptor] = field(default_factory=list)
    close_connection: bool = False

    def freeze(self) -> ClientConfig:
        return ClientConfig(
            timeout=self.timeout,
            retry_count=self.retry_count,
            retrier=self.retrier,
            transport=self.transport,
            backend=self.backend,
            interceptors=tuple(self.interceptors),
            close_connection=self.close_connection,
        )


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client configuration"""

    timeout: float
    retry_count: int
    retrier: Backoff
    transport: Transport | None
    backend: str
    interceptors: tuple[Interceptor, ...]
    close_connection: bool


Option = Callable[[ClientOptions], None]


def with_timeout(timeout: float) -> Option:
    """Set the timeout in seconds of the default transport"""
    if timeout <= 0:
        raise ValueError(f"timeout must be > 0, got {timeout}")

    def apply(options: ClientOptions) -> None:
        options.timeout = timeout

    return apply


def with_retry_count(retry_count: int) -> Option:
    """Set how many times a failed attempt is retried"""
    if retry_count < 0:
        raise ValueError(f"retry_count must be >= 0, got {retry_count}")

    def apply(options: ClientOptions) -> None:
        options.retry_count = retry_count

    return apply


def with_retrier(retrier: Backoff) -> Option:
    """Set the backoff policy used between attempts"""

    def apply(options: ClientOptions) -> None:
        options.retrier = retrier

    return apply


def with_transport(transport: Transport) -> Option:
    """Use a caller owned transport instead of creating one"""

    def apply(options: ClientOptions) -> None:
        options.transport = transport

    return apply


def with_backend(name: str) -> Option:
    """Select the transport backend the client creates when no transport is given"""
    if name not in TRANSPORTS:
        raise ValueError(f"Unknown transport {name!r}, expected one of {sorted(TRANSPORTS)}")

    def apply(options: ClientOptions) -> None:
        options.backend = name

    return apply


def with_interceptors(interceptors: Iterable[Interceptor]) -> Option:
    """Set the interceptors, invoked in the given order"""
    interceptors = list(interceptors)

    def apply(options: ClientOptions) -> None:
        options.interceptors = list(interceptors)

    return apply


def with_close_connection(close: bool = True) -> Option:
    """Disable connection reuse for every request sent by the client"""

    def apply(options: ClientOptions) -> None:
        options.close_connection = close

    return apply


def apply_options(*options: Option) -> ClientConfig:
    """Apply options in order to a fresh builder and freeze the result"""
    builder = ClientOptions()
    for option in options:
        option(builder)
    return builder.freeze()
