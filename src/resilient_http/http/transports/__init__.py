"""Transport backends behind the single-attempt send contract."""

from .aiohttp_transport import AiohttpTransport
from .base import Transport
from .httpx_transport import HttpxTransport

TRANSPORTS = {
    "httpx": HttpxTransport,
    "aiohttp": AiohttpTransport,
}


def make_transport(name: str = "httpx", timeout: float = 30.0) -> Transport:
    """Create a transport backend by name"""
    try:
        transport_class = TRANSPORTS[name]
    except KeyError:
        raise ValueError(f"Unknown transport {name!r}, expected one of {sorted(TRANSPORTS)}") from None
    return transport_class(timeout=timeout)


__all__ = [
    "Transport",
    "HttpxTransport",
    "AiohttpTransport",
    "make_transport",
]
