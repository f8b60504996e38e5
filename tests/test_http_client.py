import asyncio

import httpx
import pytest

from bodenrichtwert.errors import NetworkTimeout, UpstreamError
from bodenrichtwert.http_client import AsyncHttpClient, RetryConfig, compute_backoff_delays


def _client(handler, retries=2, max_bytes=2_000_000):
    sleeps = []

    async def record_sleep(delay):
        sleeps.append(delay)

    client = AsyncHttpClient(
        transport=httpx.MockTransport(handler),
        retry_config=RetryConfig(retries=retries, base_delay=0.5, factor=2.0, jitter=0.0),
        sleep_fn=record_sleep,
        max_bytes=max_bytes,
    )
    return client, sleeps


def test_backoff_delays_unit():
    delays = compute_backoff_delays(3, base_delay=0.5, factor=2.0, jitter=0.0, rand_fn=lambda: 0.2)
    assert delays == [0.5, 1.0, 2.0]


def test_backoff_jitter_never_negative():
    delays = compute_backoff_delays(2, base_delay=0.0, factor=2.0, jitter=1.0, rand_fn=lambda: 0.0)
    assert delays == [0.0, 0.0]


def test_retries_on_503_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) < 3:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, text="ok", headers={"Content-Type": "text/plain"})

    client, sleeps = _client(handler)
    result = asyncio.run(client.get("https://wfs.example.test/boris", params={"a": "1"}))
    assert result["status"] == 200
    assert result["text"] == "ok"
    assert result["content_type"] == "text/plain"
    assert sleeps == [0.5, 1.0]
    assert len(calls) == 3


def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(404, text="nope")

    client, sleeps = _client(handler)
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(client.get("https://wfs.example.test/boris"))
    assert excinfo.value.status == 404
    assert len(calls) == 1
    assert sleeps == []


def test_timeout_is_not_retried():
    calls = []

    def handler(request):
        calls.append(1)
        raise httpx.ConnectTimeout("slow", request=request)

    client, _ = _client(handler)
    with pytest.raises(NetworkTimeout):
        asyncio.run(client.get("https://wfs.example.test/boris"))
    assert len(calls) == 1


def test_transport_error_retried_then_raised():
    calls = []

    def handler(request):
        calls.append(1)
        raise httpx.ConnectError("refused", request=request)

    client, sleeps = _client(handler, retries=1)
    with pytest.raises(UpstreamError):
        asyncio.run(client.get("https://wfs.example.test/boris"))
    assert len(calls) == 2
    assert sleeps == [0.5]


def test_head_does_not_raise_on_status():
    client, _ = _client(lambda request: httpx.Response(403), retries=0)
    result = asyncio.run(client.head("https://atlas.example.test"))
    assert result["status"] == 403


def test_oversized_body_truncated():
    client, _ = _client(lambda request: httpx.Response(200, text="x" * 100), retries=0, max_bytes=10)
    result = asyncio.run(client.get("https://wms.example.test"))
    assert result["truncated"] is True
    assert result["text"] == "x" * 10


def test_default_user_agent_sent():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers.get("User-Agent")
        return httpx.Response(200, text="")

    client, _ = _client(handler, retries=0)
    asyncio.run(client.get("https://wfs.example.test"))
    assert seen["ua"] == "BRW-API/1.0 (lebenswert.de)"
