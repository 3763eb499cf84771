"""HTTP client utilities with retry, backoff and interceptor support."""

from .backoff import (
    Backoff,
    CallableBackoff,
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    NoBackoff,
    backoff_from_settings,
)
from .client import HttpClient, create_http_client, get_http_client
from .errors import (
    HttpClientError,
    HTTPStatusError,
    RequestConstructionError,
    RetriesExhaustedError,
    TransportError,
)
from .executor import RetryingExecutor
from .interceptors import CorrelationInterceptor, Interceptor, InterceptorChain, LoggingInterceptor
from .models import ReplayableBody, Request, Response, ResponseNotReadError
from .options import (
    ClientConfig,
    Option,
    with_backend,
    with_close_connection,
    with_interceptors,
    with_retrier,
    with_retry_count,
    with_timeout,
    with_transport,
)
from .transports import AiohttpTransport, HttpxTransport, Transport, make_transport

__all__ = [
    "HttpClient",
    "create_http_client",
    "get_http_client",
    "RetryingExecutor",
    "Request",
    "Response",
    "ReplayableBody",
    "ResponseNotReadError",
    "Backoff",
    "NoBackoff",
    "ConstantBackoff",
    "LinearBackoff",
    "ExponentialBackoff",
    "CallableBackoff",
    "backoff_from_settings",
    "Interceptor",
    "InterceptorChain",
    "LoggingInterceptor",
    "CorrelationInterceptor",
    "Transport",
    "HttpxTransport",
    "AiohttpTransport",
    "make_transport",
    "ClientConfig",
    "Option",
    "with_timeout",
    "with_retry_count",
    "with_retrier",
    "with_transport",
    "with_backend",
    "with_interceptors",
    "with_close_connection",
    "HttpClientError",
    "HTTPStatusError",
    "RequestConstructionError",
    "TransportError",
    "RetriesExhaustedError",
]
