# Assumptions:
# - Using pytest for testing framework
# - Spans and metrics are collected in memory, no exporter is contacted

import asyncio
from unittest.mock import Mock

import pytest
from opentelemetry import trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from resilient_http.http.errors import TransportError
from resilient_http.http.executor import RetryingExecutor
from resilient_http.http.interceptors import Interceptor
from resilient_http.http.models import Request
from resilient_http.http.transports import Transport
from resilient_http.telemetry import TracingInterceptor, init_metrics, init_tracing, setup_telemetry
from resilient_http.telemetry import otel
from tests.conftest import FakeTransport


class HangingTransport(Transport):
    """Transport whose send never completes"""

    async def send(self, request):
        await asyncio.Event().wait()

    async def aclose(self):
        pass


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def metric_reader():
    return InMemoryMetricReader()


@pytest.fixture
def interceptor(span_exporter, metric_reader):
    tracer_provider = TracerProvider()
    tracer_provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    meter_provider = MeterProvider(metric_readers=[metric_reader])
    return TracingInterceptor(
        tracer=tracer_provider.get_tracer("test"),
        meter=meter_provider.get_meter("test"),
    )


def counter_value(reader, name):
    for resource_metrics in reader.get_metrics_data().resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == name:
                    return sum(point.value for point in metric.data.data_points)
    return 0


class TestTracingInterceptor:
    """Test cases for per-attempt spans and counters"""

    @pytest.mark.asyncio
    async def test_span_per_attempt(self, interceptor, span_exporter, metric_reader):
        """Test a retried server error yields one span per attempt"""
        executor = RetryingExecutor(FakeTransport([503, 200]), retry_count=1, interceptors=[interceptor])

        await executor.execute(Request.build("GET", "https://api.example.com/items"))

        spans = span_exporter.get_finished_spans()
        assert [span.name for span in spans] == ["HTTP GET", "HTTP GET"]
        assert spans[0].kind == trace.SpanKind.CLIENT
        assert spans[0].status.status_code == trace.StatusCode.ERROR
        assert spans[0].attributes["http.status_code"] == 503
        assert spans[1].status.status_code == trace.StatusCode.OK
        assert counter_value(metric_reader, "http.client.attempts") == 2
        assert counter_value(metric_reader, "http.client.transport_errors") == 0

    @pytest.mark.asyncio
    async def test_transport_error_recorded(self, interceptor, span_exporter, metric_reader):
        """Test transport errors end the span with the exception recorded"""
        executor = RetryingExecutor(
            FakeTransport([TransportError("connection refused"), 200]),
            retry_count=1,
            interceptors=[interceptor],
        )

        await executor.execute(Request.build("GET", "https://api.example.com/items"))

        failed = span_exporter.get_finished_spans()[0]
        assert failed.status.status_code == trace.StatusCode.ERROR
        assert failed.status.description == "connection refused"
        assert failed.events[0].name == "exception"
        assert counter_value(metric_reader, "http.client.transport_errors") == 1

    @pytest.mark.asyncio
    async def test_deadline_during_send_ends_span(self, interceptor, span_exporter, metric_reader):
        """Test an attempt cut short by a deadline still ends and exports its span"""
        executor = RetryingExecutor(HangingTransport(), retry_count=2, interceptors=[interceptor])

        for _ in range(3):
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(executor.execute(Request.build("GET", "https://api.example.com/items")), 0.01)

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 3
        assert all(span.status.status_code == trace.StatusCode.ERROR for span in spans)
        assert interceptor._spans == {}
        assert counter_value(metric_reader, "http.client.transport_errors") == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_ends_span(self, interceptor, span_exporter):
        """Test a non-transport exception from the transport ends the span"""
        executor = RetryingExecutor(FakeTransport([KeyError("adapter bug")]), retry_count=2, interceptors=[interceptor])

        for _ in range(3):
            with pytest.raises(KeyError):
                await executor.execute(Request.build("GET", "https://api.example.com/items"))

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 3
        assert spans[0].events[0].name == "exception"
        assert interceptor._spans == {}

    @pytest.mark.asyncio
    async def test_later_interceptor_failure_ends_span(self, interceptor, span_exporter):
        """Test a span started before a failing interceptor is still ended"""

        class FailingStart(Interceptor):
            def on_request_start(self, request):
                raise RuntimeError("hook failed")

        executor = RetryingExecutor(FakeTransport([200]), interceptors=[interceptor, FailingStart()])

        with pytest.raises(RuntimeError, match="hook failed"):
            await executor.execute(Request.build("GET", "https://api.example.com/items"))

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].status.description == "hook failed"
        assert interceptor._spans == {}

    def test_injects_trace_context(self, interceptor, span_exporter):
        """Test the attempt's span context is propagated in the headers"""
        request = Request.build("GET", "https://api.example.com/items")

        interceptor.on_request_start(request)

        span_id = format(interceptor._spans[id(request)].get_span_context().span_id, "016x")
        assert span_id in request.headers["traceparent"]


class TestTelemetrySetup:
    """Test cases for provider initialization"""

    def test_tracing_without_endpoint_is_noop(self, monkeypatch):
        """Test a no-op provider is installed when no endpoint is configured"""
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
        set_provider = Mock()
        monkeypatch.setattr(otel.trace, "set_tracer_provider", set_provider)

        init_tracing("billing")

        provider = set_provider.call_args.args[0]
        assert isinstance(provider, trace.NoOpTracerProvider)

    def test_metrics_without_endpoint_is_noop(self, monkeypatch):
        """Test no meter provider is installed when no endpoint is configured"""
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
        set_provider = Mock()
        monkeypatch.setattr(otel.metrics, "set_meter_provider", set_provider)

        init_metrics("billing")

        set_provider.assert_not_called()

    def test_setup_telemetry_flags(self, monkeypatch):
        """Test tracing and metrics can be enabled independently"""
        init_tracing_mock = Mock()
        init_metrics_mock = Mock()
        monkeypatch.setattr(otel, "init_tracing", init_tracing_mock)
        monkeypatch.setattr(otel, "init_metrics", init_metrics_mock)

        setup_telemetry("billing", endpoint="http://collector:4317", enable_metrics=False)

        init_tracing_mock.assert_called_once_with("billing", "1.0.0", endpoint="http://collector:4317")
        init_metrics_mock.assert_not_called()
