import os

from opentelemetry import metrics, propagate, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ..http.errors import TransportError
from ..http.interceptors import Interceptor
from ..http.models import Request, Response


def _create_resource(service_name: str, service_version: str, resource_attributes: dict | None) -> Resource:
    resource_attrs = {
        SERVICE_NAME: service_name,
        SERVICE_VERSION: service_version,
        "deployment.environment": os.getenv("ENV", "development"),
    }

    if resource_attributes:
        resource_attrs.update(resource_attributes)

    return Resource.create(resource_attrs)


def init_tracing(
    service_name: str,
    service_version: str = "1.0.0",
    endpoint: str | None = None,
    resource_attributes: dict | None = None,
) -> None:
    """
    Initialize OpenTelemetry tracing

    Args:
        service_name: Name of the service
        service_version: Version of the service
        endpoint: OTLP endpoint URL
        resource_attributes: Additional resource attributes
    """

    if not endpoint:
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if not endpoint:
        # No endpoint configured, use no-op tracer
        trace.set_tracer_provider(trace.NoOpTracerProvider())
        return

    tracer_provider = TracerProvider(resource=_create_resource(service_name, service_version, resource_attributes))

    otlp_exporter = OTLPSpanExporter(
        endpoint=endpoint,
        insecure=endpoint.startswith("http://"),
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(tracer_provider)


def init_metrics(
    service_name: str,
    service_version: str = "1.0.0",
    endpoint: str | None = None,
    resource_attributes: dict | None = None,
    export_interval: int = 60,
) -> None:
    """
    Initialize OpenTelemetry metrics

    Args:
        service_name: Name of the service
        service_version: Version of the service
        endpoint: OTLP endpoint URL
        resource_attributes: Additional resource attributes
        export_interval: Metrics export interval in seconds
    """

    if not endpoint:
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if not endpoint:
        return

    metric_exporter = OTLPMetricExporter(
        endpoint=endpoint,
        insecure=endpoint.startswith("http://"),
    )

    metric_reader = PeriodicExportingMetricReader(
        exporter=metric_exporter,
        export_interval_millis=export_interval * 1000,
    )

    meter_provider = MeterProvider(
        resource=_create_resource(service_name, service_version, resource_attributes),
        metric_readers=[metric_reader],
    )

    metrics.set_meter_provider(meter_provider)


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Get a tracer instance"""
    return trace.get_tracer(name or __name__)


def get_meter(name: str | None = None) -> metrics.Meter:
    """Get a meter instance"""
    return metrics.get_meter(name or __name__)


class TracingInterceptor(Interceptor):
    """One client span per attempt, plus attempt and error counters"""

    def __init__(self, tracer: trace.Tracer | None = None, meter: metrics.Meter | None = None):
        self.tracer = tracer or get_tracer("resilient_http")
        meter = meter or get_meter("resilient_http")
        self.attempt_counter = meter.create_counter(
            "http.client.attempts", unit="1", description="HTTP request attempts sent"
        )
        self.error_counter = meter.create_counter(
            "http.client.transport_errors", unit="1", description="HTTP attempts failed at the transport level"
        )
        # Keyed by request identity; the executor ends every attempt through
        # on_request_end or on_error, so entries never outlive their request
        self._spans: dict[int, trace.Span] = {}

    def on_request_start(self, request: Request) -> None:
        span = self.tracer.start_span(
            f"HTTP {request.method}",
            kind=trace.SpanKind.CLIENT,
            attributes={"http.method": request.method, "http.url": request.url},
        )
        self._spans[id(request)] = span
        propagate.inject(request.headers, context=trace.set_span_in_context(span))
        self.attempt_counter.add(1, {"http.method": request.method})

    def on_request_end(self, request: Request, response: Response) -> None:
        span = self._spans.pop(id(request), None)
        if span is None:
            return
        span.set_attribute("http.status_code", response.status_code)
        if response.status_code >= 500:
            span.set_status(trace.Status(trace.StatusCode.ERROR, f"HTTP {response.status_code}"))
        else:
            span.set_status(trace.Status(trace.StatusCode.OK))
        span.end()

    def on_error(self, request: Request, error: BaseException) -> None:
        if isinstance(error, TransportError):
            self.error_counter.add(1, {"http.method": request.method})
        span = self._spans.pop(id(request), None)
        if span is None:
            return
        span.set_status(trace.Status(trace.StatusCode.ERROR, str(error) or error.__class__.__name__))
        span.record_exception(error)
        span.end()


def setup_telemetry(
    service_name: str,
    service_version: str = "1.0.0",
    endpoint: str | None = None,
    enable_tracing: bool = True,
    enable_metrics: bool = True,
) -> None:
    """
    Setup complete telemetry stack

    Args:
        service_name: Name of the service
        service_version: Version of the service
        endpoint: OTLP endpoint URL, defaults to OTEL_EXPORTER_OTLP_ENDPOINT
        enable_tracing: Enable tracing
        enable_metrics: Enable metrics
    """

    if enable_tracing:
        init_tracing(service_name, service_version, endpoint=endpoint)

    if enable_metrics:
        init_metrics(service_name, service_version, endpoint=endpoint)
