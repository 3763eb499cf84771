# Assumptions:
# - Using pytest with pytest-asyncio for async tests
# - Transports are replaced by scripted fakes at the send boundary
# - Backoff waits are recorded instead of slept

from dataclasses import dataclass

import httpx
import pytest

from resilient_http.http.backoff import Backoff
from resilient_http.http.interceptors import Interceptor
from resilient_http.http.models import Request, Response
from resilient_http.http.transports import Transport
from resilient_http.logging import set_correlation_id, set_trace_id


@dataclass
class SentAttempt:
    """What one physical attempt put on the wire"""

    method: str
    url: str
    headers: httpx.Headers
    body_offset: int | None
    body: bytes | None


class FakeTransport(Transport):
    """Transport replaying scripted outcomes; the last outcome repeats"""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.attempts: list[SentAttempt] = []
        self.responses: list[Response] = []
        self.closed = False

    async def send(self, request: Request) -> Response:
        body_offset = request.body.tell() if request.body is not None else None
        body = request.body.read() if request.body is not None else None
        self.attempts.append(
            SentAttempt(request.method, request.url, httpx.Headers(request.headers), body_offset, body)
        )

        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome

        payload = f"status {outcome}".encode()

        async def read() -> bytes:
            return payload

        response = Response(status_code=outcome, request=request, reader=read)
        self.responses.append(response)
        return response

    async def aclose(self) -> None:
        self.closed = True


class RecordingInterceptor(Interceptor):
    """Append every hook invocation to a shared event log"""

    def __init__(self, name: str = "recorder", events: list | None = None):
        self.name = name
        self.events = events if events is not None else []

    def on_request_start(self, request):
        self.events.append((self.name, "start", request.url))

    def on_request_end(self, request, response):
        self.events.append((self.name, "end", request.url, response.status_code))

    def on_error(self, request, error):
        self.events.append((self.name, "error", request.url, str(error)))

    def count(self, kind: str) -> int:
        return sum(1 for event in self.events if event[1] == kind)


class SpyBackoff(Backoff):
    """Backoff returning a fixed interval and remembering which attempts asked"""

    def __init__(self, interval: float = 0.25):
        self.interval = interval
        self.calls: list[int] = []

    def next_interval(self, attempt: int) -> float:
        self.calls.append(attempt)
        return self.interval


class SleepRecorder:
    """Stand-in for asyncio.sleep"""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recorder():
    return RecordingInterceptor()


@pytest.fixture
def spy_backoff():
    return SpyBackoff()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture(autouse=True)
def clear_correlation_context():
    yield
    set_correlation_id(None)
    set_trace_id(None)
