from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

import structlog

from .backoff import Backoff, NoBackoff
from .errors import RetriesExhaustedError, TransportError
from .interceptors import Interceptor, InterceptorChain
from .models import ReplayableBody, Request, Response
from .transports import Transport

logger = structlog.get_logger(__name__)


class RetryingExecutor:
    """
    Drive one logical request through up to ``retry_count + 1`` attempts

    Transport errors and 5xx responses are retried after the backoff policy's
    wait. Each call keeps its own buffered body and response, so one executor
    can serve concurrent requests.
    """

    def __init__(
        self,
        transport: Transport,
        retry_count: int = 0,
        retrier: Backoff | None = None,
        interceptors: InterceptorChain | Iterable[Interceptor] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {retry_count}")
        self.transport = transport
        self.retry_count = retry_count
        self.retrier = retrier or NoBackoff()
        if not isinstance(interceptors, InterceptorChain):
            interceptors = InterceptorChain(interceptors)
        self.interceptors = interceptors
        self._sleep = sleep

    async def execute(self, request: Request) -> Response:
        """
        Send the request, retrying transport errors and server errors

        Returns:
            The last response obtained. It may carry a 5xx status when every
            attempt hit a server error; callers must check the status code.

        Raises:
            RetriesExhaustedError: If transport errors were recorded and no
                later attempt produced a non-5xx response. The message joins
                the individual error messages with commas.
            RequestConstructionError: If the request body cannot be read
        """
        # Snapshot before the first send so every attempt replays the same bytes
        if request.body is not None:
            request.body = ReplayableBody.snapshot(request.body)

        max_attempts = self.retry_count + 1
        log = logger.bind(method=request.method, url=request.url)
        errors: list[str] = []
        response: Response | None = None
        attempts = 0
        # True from on_request_start until the attempt's end or error hooks completed
        in_flight = False

        try:
            for attempt in range(max_attempts):
                if response is not None:
                    await response.aclose()
                    response = None

                attempts = attempt + 1
                in_flight = True
                self.interceptors.on_request_start(request)

                if request.body is not None:
                    request.body.rewind()

                log.debug("Sending HTTP request", attempt=attempts, max_attempts=max_attempts)

                try:
                    response = await self.transport.send(request)
                except TransportError as e:
                    errors.append(str(e))
                    self.interceptors.on_error(request, e)
                    in_flight = False
                    if attempt < self.retry_count:
                        await self._backoff(log, attempt, max_attempts, error=str(e))
                    continue

                self.interceptors.on_request_end(request, response)
                in_flight = False

                if response.status_code >= 500:
                    if attempt < self.retry_count:
                        await self._backoff(log, attempt, max_attempts, status_code=response.status_code)
                        continue
                    break

                errors = []
                break
        except (asyncio.CancelledError, Exception) as e:
            # Interceptor failures, unexpected exceptions and cancellation must
            # not leak the held response or leave the attempt open in the hooks
            if response is not None:
                await response.aclose()
            if in_flight:
                log.warning("HTTP request aborted", attempt=attempts, error=repr(e))
                self.interceptors.on_error(request, e)
            raise

        if errors:
            log.error("HTTP request failed after all retries", attempts=attempts, errors=errors)
            raise RetriesExhaustedError(errors, attempts=attempts, request=request, response=response)

        if response.status_code >= 500:
            log.error(
                "HTTP request returned server error after all retries",
                attempts=attempts,
                status_code=response.status_code,
            )
        else:
            log.debug("HTTP response received", attempts=attempts, status_code=response.status_code)

        return response

    async def _backoff(self, log, attempt: int, max_attempts: int, **context) -> None:
        backoff_time = self.retrier.next_interval(attempt)
        log.warning(
            "HTTP request failed, retrying",
            attempt=attempt + 1,
            max_attempts=max_attempts,
            backoff_seconds=backoff_time,
            **context,
        )
        await self._sleep(backoff_time)
