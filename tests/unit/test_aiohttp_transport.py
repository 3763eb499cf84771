# Assumptions:
# - Using pytest for testing framework
# - aioresponses patches aiohttp.ClientSession at the network boundary

import asyncio

import aiohttp
import pytest
import pytest_asyncio
from aioresponses import aioresponses

from resilient_http.http.client import create_http_client
from resilient_http.http.errors import TransportError
from resilient_http.http.models import Request
from resilient_http.http.transports import AiohttpTransport

ITEMS_URL = "https://api.example.com/items"


def recorded_calls(mocked):
    return [call for calls in mocked.requests.values() for call in calls]


class TestAiohttpTransport:
    """Test cases for the aiohttp transport adapter"""

    @pytest_asyncio.fixture
    async def transport(self):
        transport = AiohttpTransport(timeout=5.0)
        yield transport
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_send_maps_request_and_response(self, transport):
        """Test headers and body go out and status, headers and body come back"""
        with aioresponses() as mocked:
            # Arrange
            mocked.put(ITEMS_URL, status=201, body=b"created", headers={"X-Item-ID": "42"})
            request = Request.build(
                "PUT",
                ITEMS_URL,
                body=b'{"name": "widget"}',
                headers={"X-Request-ID": "req-1"},
                close=True,
            )

            # Act
            response = await transport.send(request)
            body = await response.aread()

            # Assert
            call = recorded_calls(mocked)[0]
            assert call.kwargs["data"] == b'{"name": "widget"}'
            assert ("x-request-id", "req-1") in call.kwargs["headers"]
            assert ("connection", "close") in call.kwargs["headers"]
            assert response.status_code == 201
            assert response.headers["x-item-id"] == "42"
            assert body == b"created"
            assert response.is_closed

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exception, message",
        [
            (aiohttp.ClientConnectionError("connection refused"), "connection refused"),
            (asyncio.TimeoutError(), "TimeoutError"),
        ],
    )
    async def test_failures_are_wrapped(self, transport, exception, message):
        """Test aiohttp errors and timeouts surface as TransportError"""
        with aioresponses() as mocked:
            mocked.get(ITEMS_URL, exception=exception)
            request = Request.build("GET", ITEMS_URL)

            with pytest.raises(TransportError, match=message) as exc_info:
                await transport.send(request)

        assert exc_info.value.__cause__ is exception

    @pytest.mark.asyncio
    async def test_borrowed_session_is_not_closed(self):
        """Test a caller supplied session outlives the transport"""
        session = aiohttp.ClientSession()
        transport = AiohttpTransport(session=session)

        await transport.aclose()

        assert not session.closed
        await session.close()


class TestHttpClientOverAiohttp:
    """End-to-end tests of the client facade over the aiohttp backend"""

    @pytest.mark.asyncio
    async def test_server_error_then_success(self):
        """Test the aiohttp backend retries a 500 and returns the read response"""
        with aioresponses() as mocked:
            mocked.patch(ITEMS_URL, status=500)
            mocked.patch(ITEMS_URL, status=200, payload={"updated": True})

            async with create_http_client(retry_count=1, backend="aiohttp") as client:
                response = await client.patch(ITEMS_URL, body=b'{"name": "gadget"}')

            assert response.status_code == 200
            assert response.json() == {"updated": True}
            assert [call.kwargs["data"] for call in recorded_calls(mocked)] == [b'{"name": "gadget"}'] * 2
