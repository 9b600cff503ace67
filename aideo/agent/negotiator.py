"""Chooses which call encodings to offer the backend and shapes the request body."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aideo.agent.function_registry import to_legacy_functions, to_tools
from aideo.agent.messages import Message
from aideo.models.settings import AiSettings, FunctionCallingMode


@dataclass(frozen=True, slots=True)
class FormatOffer:
    offer_tools: bool
    offer_legacy_functions: bool


_OFFERS: dict[FunctionCallingMode, FormatOffer] = {
    FunctionCallingMode.TOOLS: FormatOffer(offer_tools=True, offer_legacy_functions=False),
    FunctionCallingMode.FUNCTIONS: FormatOffer(offer_tools=False, offer_legacy_functions=True),
    FunctionCallingMode.DISABLED: FormatOffer(offer_tools=False, offer_legacy_functions=False),
    # Both at once: a backend that only understands one encoding still works.
    FunctionCallingMode.AUTO: FormatOffer(offer_tools=True, offer_legacy_functions=True),
}


def negotiate(mode: FunctionCallingMode | str) -> FormatOffer:
    if not isinstance(mode, FunctionCallingMode):
        mode = FunctionCallingMode.parse(mode)
    return _OFFERS[mode]


def build_completion_body(
    settings: AiSettings,
    messages: list[Message],
    *,
    stream: bool,
) -> dict[str, Any]:
    offer = negotiate(settings.function_calling_mode)
    body: dict[str, Any] = {
        "model": settings.model,
        "messages": [message.to_wire() for message in messages],
    }
    if offer.offer_legacy_functions:
        body["functions"] = to_legacy_functions()
        body["function_call"] = "auto"
    if offer.offer_tools:
        body["tools"] = to_tools()
        body["tool_choice"] = "auto"
    body["temperature"] = settings.temperature
    body["max_tokens"] = settings.max_tokens
    body["stream"] = stream
    return body
