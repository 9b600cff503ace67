from __future__ import annotations

import json
from typing import Any, AsyncIterator

import pytest
from sse_starlette.sse import AppStatus

from aideo.agent.providers.base import ProviderAdapter
from aideo.deps import get_chat_service
from aideo.observability.metrics import get_runtime_metrics


@pytest.fixture(autouse=True)
def _fresh_sse_exit_event(monkeypatch: pytest.MonkeyPatch):
    # The exit event is bound to the loop of the first streamed response.
    monkeypatch.setattr(AppStatus, "should_exit_event", None, raising=False)


class ScriptedProvider(ProviderAdapter):
    def __init__(self, responses: list[dict[str, Any]] | None = None, stream_chunks: list[bytes] | None = None):
        self.responses = list(responses or [])
        self.stream_chunks = list(stream_chunks or [])
        self.bodies: list[dict[str, Any]] = []

    async def complete(self, body: dict[str, Any]) -> dict[str, Any]:
        self.bodies.append(body)
        return self.responses.pop(0)

    async def stream(self, body: dict[str, Any]) -> AsyncIterator[bytes]:
        self.bodies.append(body)
        for chunk in self.stream_chunks:
            yield chunk

    async def check_connection(self) -> bool:
        return True


def _configure(client, **overrides) -> None:
    settings = {"api_key": "sk-test", "api_base_url": "https://llm.example.com/v1", **overrides}
    assert client.put("/v1/settings", json=settings).status_code == 200


def _install(provider: ProviderAdapter) -> None:
    get_chat_service().provider_factory = lambda settings: provider


def _sse_events(text: str) -> list[tuple[str, dict]]:
    events: list[tuple[str, dict]] = []
    event_type = None
    for line in text.splitlines():
        if line.startswith("event:"):
            event_type = line[len("event:"):].strip()
        elif line.startswith("data:") and event_type is not None:
            events.append((event_type, json.loads(line[len("data:"):].strip())))
            event_type = None
    return events


def test_chat_without_api_key_is_rejected(isolated_client):
    response = isolated_client.post("/v1/chat", json={"message": "hi"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "E_MISSING_API_KEY"


def test_chat_executes_tool_call_and_returns_updated_todos(isolated_client):
    _configure(isolated_client)
    provider = ScriptedProvider(responses=[
        {"choices": [{"message": {"role": "assistant", "tool_calls": [{
            "id": "call_1",
            "type": "function",
            "function": {"name": "add_todos", "arguments": json.dumps({"todos": [{"text": "buy milk"}]})},
        }]}}]},
        {"choices": [{"message": {"role": "assistant", "content": "Added buy milk."}}]},
    ])
    _install(provider)

    response = isolated_client.post("/v1/chat", json={"message": "remind me to buy milk"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Added buy milk."
    assert payload["function_results"][0]["function_name"] == "add_todos"
    assert payload["function_results"][0]["success"] is True
    assert [todo["text"] for todo in payload["updated_todos"]] == ["buy milk"]
    assert "warnings" not in payload


def test_chat_plain_answer_omits_function_results(isolated_client):
    _configure(isolated_client, function_calling_mode="tools")
    provider = ScriptedProvider(responses=[{"choices": [{"message": {"role": "assistant", "content": "Hello"}}]}])
    _install(provider)

    payload = isolated_client.post(
        "/v1/chat",
        json={"message": "hi", "history": [{"role": "user", "content": "before"}]},
    ).json()

    assert payload["message"] == "Hello"
    assert "function_results" not in payload
    assert "functions" not in provider.bodies[0]
    assert len(provider.bodies[0]["tools"]) == 5


def test_chat_empty_choices_maps_to_protocol_error(isolated_client):
    _configure(isolated_client)
    _install(ScriptedProvider(responses=[{"choices": []}]))

    response = isolated_client.post("/v1/chat", json={"message": "hi"})

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "E_PROTOCOL"


def test_chat_stream_emits_deltas_then_done(isolated_client):
    _configure(isolated_client)
    _install(ScriptedProvider(stream_chunks=[
        b'data: {"choices": [{"delta": {"content": "Hi"}}]}\n',
        b'data: {"choices": [{"delta": {"content": " there"}}]}\n',
        b"data: [DONE]\n",
    ]))

    response = isolated_client.post("/v1/chat/stream", json={"message": "hello"})

    assert response.status_code == 200
    assert _sse_events(response.text) == [
        ("content_delta", {"content": "Hi"}),
        ("content_delta", {"content": " there"}),
        ("done", {"content": "Hi there"}),
    ]


def test_chat_stream_reports_failure_as_error_event(isolated_client):
    _configure(isolated_client)
    _install(ScriptedProvider(stream_chunks=[
        b'data: {"choices": [{"delta": {"content": "Working"}}]}\n',
        b'data: {"choices": [{"delta": {"function_call": {"name": "format_disk", "arguments": "{}"}}}]}\n',
        b"data: [DONE]\n",
    ]))
    metrics = get_runtime_metrics()
    failed_before = metrics.streams_failed_total

    response = isolated_client.post("/v1/chat/stream", json={"message": "hello"})

    assert response.status_code == 200
    events = _sse_events(response.text)
    assert events[0] == ("content_delta", {"content": "Working"})
    event_type, payload = events[-1]
    assert event_type == "error"
    assert payload["error"]["code"] == "E_UNKNOWN_FUNCTION"
    assert isinstance(payload["error"]["trace_id"], str)
    assert "done" not in [name for name, _ in events]
    assert metrics.streams_failed_total == failed_before + 1


def test_functions_and_settings_endpoints(isolated_client):
    functions = isolated_client.get("/v1/functions").json()["functions"]
    assert len(functions) == 5

    defaults = isolated_client.get("/v1/settings").json()["settings"]
    assert defaults["function_calling_mode"] == "auto"
    assert defaults["api_key"] is None

    _configure(isolated_client, model="llama3", enable_text_fallback=False)
    saved = isolated_client.get("/v1/settings").json()["settings"]
    assert saved["model"] == "llama3"
    assert saved["enable_text_fallback"] is False

    _install(ScriptedProvider())
    assert isolated_client.post("/v1/settings/test-connection").json() == {"ok": True}


def test_settings_reject_out_of_range_temperature(isolated_client):
    response = isolated_client.put("/v1/settings", json={"api_key": "k", "temperature": 3})

    assert response.status_code == 422
