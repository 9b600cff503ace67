from __future__ import annotations

import json

import httpx
import pytest

from aideo.agent.providers.openai_compatible import OpenAICompatibleProvider
from aideo.errors import BackendError, TransportError


def _provider(handler) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        api_key="sk-test",
        base_url="https://llm.example.com/v1/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_complete_posts_body_with_bearer_auth():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "hi"}}]})

    body = {"model": "m", "messages": [{"role": "user", "content": "hello"}], "stream": False}
    response = await _provider(handler).complete(body)

    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == body
    assert response["choices"][0]["message"]["content"] == "hi"


@pytest.mark.asyncio
async def test_non_success_status_is_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="invalid api key")

    with pytest.raises(BackendError) as exc_info:
        await _provider(handler).complete({"model": "m", "messages": []})

    assert exc_info.value.message == "HTTP 401: invalid api key"
    assert exc_info.value.details == {"status_code": 401}


@pytest.mark.asyncio
async def test_invalid_json_is_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(BackendError) as exc_info:
        await _provider(handler).complete({"model": "m", "messages": []})

    assert exc_info.value.message.startswith("Invalid JSON response")


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await _provider(handler).complete({"model": "m", "messages": []})

    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_stream_yields_raw_bytes():
    payload = b'data: {"choices": [{"delta": {"content": "x"}}]}\n\ndata: [DONE]\n\n'

    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(200, content=payload, headers={"Content-Type": "text/event-stream"})

    chunks = [chunk async for chunk in _provider(handler).stream({"model": "m", "messages": [], "stream": True})]

    assert b"".join(chunks) == payload


@pytest.mark.asyncio
async def test_stream_error_status_is_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(BackendError):
        async for _ in _provider(handler).stream({"model": "m", "messages": [], "stream": True}):
            pass


@pytest.mark.asyncio
async def test_check_connection_lists_models():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/models"):
            return httpx.Response(200, json={"object": "list", "data": []})
        return httpx.Response(404)

    assert await _provider(handler).check_connection() is True


@pytest.mark.asyncio
async def test_check_connection_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "bad key"}})

    assert await _provider(handler).check_connection() is False
