from __future__ import annotations

import httpx
import pytest

from printpay.domain.errors import ExternalServiceError, FailureKind
from printpay.infrastructure.http_client import post_json_with_retries, request_json
from printpay.infrastructure.retry import RetryPolicy

FAST_RETRY = RetryPolicy(max_attempts=3, initial_delay=0.001, max_delay=0.001, jitter=False)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _sequence(*responses):
    """Handler replaying (status, kwargs) pairs or raising exceptions; the last entry repeats"""
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        spec = responses[min(calls["n"], len(responses) - 1)]
        calls["n"] += 1
        if isinstance(spec, Exception):
            raise spec
        status, kwargs = spec
        return httpx.Response(status, **kwargs)

    return handler, calls


async def test_post_json_retries_on_5xx():
    handler, calls = _sequence((500, {"json": {"error": "boom"}}), (200, {"json": {"ok": True}}))

    async with _client(handler) as client:
        data = await post_json_with_retries(
            client, "http://example.test/verify", service="test", payload={"x": 1}, retry=FAST_RETRY
        )

    assert data == {"ok": True}
    assert calls["n"] == 2


async def test_post_json_retries_on_429():
    handler, calls = _sequence((429, {}), (429, {}), (200, {"json": {"ok": 1}}))

    async with _client(handler) as client:
        data = await post_json_with_retries(
            client, "http://example.test", service="test", payload={}, retry=FAST_RETRY
        )

    assert data == {"ok": 1}
    assert calls["n"] == 3


async def test_post_json_does_not_retry_on_401():
    handler, calls = _sequence((401, {"json": {"error": "unauthorized"}}))

    async with _client(handler) as client:
        with pytest.raises(ExternalServiceError) as exc_info:
            await post_json_with_retries(
                client, "http://example.test", service="test", payload={"x": 1}, retry=FAST_RETRY
            )

    assert exc_info.value.status_code == 401
    assert exc_info.value.kind == FailureKind.HTTP
    assert "unauthorized" in str(exc_info.value)
    assert calls["n"] == 1


async def test_post_json_gives_up_after_max_attempts():
    handler, calls = _sequence((503, {}))

    async with _client(handler) as client:
        with pytest.raises(ExternalServiceError) as exc_info:
            await post_json_with_retries(
                client, "http://example.test", service="test", payload={}, retry=FAST_RETRY
            )

    assert exc_info.value.status_code == 503
    assert calls["n"] == 3


async def test_transport_errors_are_classified_and_retried():
    request = httpx.Request("POST", "http://example.test")
    handler, calls = _sequence(httpx.ConnectError("refused", request=request))

    async with _client(handler) as client:
        with pytest.raises(ExternalServiceError) as exc_info:
            await post_json_with_retries(
                client, "http://example.test", service="test", payload={}, retry=FAST_RETRY
            )

    assert exc_info.value.kind == FailureKind.NETWORK
    assert exc_info.value.status_code is None
    assert calls["n"] == 3


async def test_timeout_is_classified():
    request = httpx.Request("GET", "http://example.test")
    handler, _ = _sequence(httpx.ReadTimeout("slow", request=request))

    async with _client(handler) as client:
        with pytest.raises(ExternalServiceError) as exc_info:
            await request_json(client, "GET", "http://example.test", service="test")

    assert exc_info.value.kind == FailureKind.TIMEOUT


async def test_invalid_json_is_not_retried():
    handler, calls = _sequence((200, {"content": b"<html>", "headers": {"Content-Type": "text/html"}}))

    async with _client(handler) as client:
        with pytest.raises(ExternalServiceError) as exc_info:
            await post_json_with_retries(
                client, "http://example.test", service="test", payload={}, retry=FAST_RETRY
            )

    assert exc_info.value.kind == FailureKind.INVALID_RESPONSE
    assert calls["n"] == 1


async def test_empty_body_returns_none():
    handler, _ = _sequence((200, {}))

    async with _client(handler) as client:
        assert await request_json(client, "POST", "http://example.test", service="test", json={}) is None


async def test_request_sends_json_and_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"ok": True})

    async with _client(handler) as client:
        await request_json(
            client,
            "POST",
            "http://example.test",
            service="test",
            json={"a": 1},
            headers={"Authorization": "Bearer t"},
        )

    assert seen["auth"] == "Bearer t"
    assert b'"a"' in seen["body"]
