import contextvars
import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger
from structlog.stdlib import LoggerFactory

# Stdlib loggers of the transport backends, chatty at INFO and DEBUG
TRANSPORT_LOGGERS = ("httpx", "httpcore", "aiohttp")


def setup_logging(
    service_name: str,
    level: str = "INFO",
    format_type: str = "json",  # "json" or "console"
    transport_level: str = "WARNING",
) -> None:
    """
    Set up structured logging for applications using the HTTP client

    Args:
        service_name: Name of the calling service for log context
        level: Log level (DEBUG, INFO, WARNING, ERROR) for the client's own events
        format_type: "json" for production, "console" for development
        transport_level: Log level applied to the httpx, httpcore and aiohttp loggers
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    logging.getLogger("resilient_http").setLevel(log_level)
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, transport_level.upper(), logging.WARNING))

    # Configure processors
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_service_context(service_name),
        add_correlation_context(),
    ]

    if format_type == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # Transport libraries log through stdlib, format those records as JSON too
    if format_type == "json":
        root_logger = logging.getLogger()
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
        handler.setFormatter(formatter)
        root_logger.handlers = [handler]


def add_service_context(service_name: str):
    """Add service context to all log entries"""

    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        return event_dict

    return processor


def add_correlation_context():
    """Add correlation and trace IDs from context"""

    def processor(logger, method_name, event_dict):
        correlation_id = _correlation_id_var.get()
        if correlation_id:
            event_dict["correlation_id"] = correlation_id

        trace_id = _trace_id_var.get()
        if trace_id:
            event_dict["trace_id"] = trace_id

        return event_dict

    return processor


# Context variables for correlation and trace IDs
_correlation_id_var = contextvars.ContextVar("correlation_id", default=None)
_trace_id_var = contextvars.ContextVar("trace_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context"""
    _correlation_id_var.set(correlation_id)


def set_trace_id(trace_id: str | None) -> None:
    """Set trace ID in context"""
    _trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    """Get correlation ID from context"""
    return _correlation_id_var.get()


def get_trace_id() -> str | None:
    """Get trace ID from context"""
    return _trace_id_var.get()


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)
