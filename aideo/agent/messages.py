"""Chat message types and the unified call view over the three wire encodings."""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:8]}"


@dataclass(slots=True)
class FunctionCall:
    name: str
    arguments: str = ""

    def to_wire(self) -> dict[str, str]:
        return {"name": self.name, "arguments": self.arguments}


@dataclass(slots=True)
class ToolCall:
    id: str
    function: FunctionCall
    type: str = "function"

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "function": self.function.to_wire()}


@dataclass(slots=True)
class Message:
    role: str  # "system" | "user" | "assistant" | "function" | "tool"
    content: str | None = None
    name: str | None = None
    function_call: FunctionCall | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"role": self.role}
        if self.content is not None:
            entry["content"] = self.content
        if self.name is not None:
            entry["name"] = self.name
        if self.function_call is not None:
            entry["function_call"] = self.function_call.to_wire()
        if self.tool_calls is not None:
            entry["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            entry["tool_call_id"] = self.tool_call_id
        return entry

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Message":
        content = data.get("content")
        name = data.get("name")
        tool_call_id = data.get("tool_call_id")
        return cls(
            role=str(data.get("role") or "assistant"),
            content=content if isinstance(content, str) else None,
            name=name if isinstance(name, str) else None,
            function_call=_function_call_from_wire(data.get("function_call")),
            tool_calls=_tool_calls_from_wire(data.get("tool_calls")),
            tool_call_id=tool_call_id if isinstance(tool_call_id, str) else None,
        )


def _function_call_from_wire(raw: Any) -> FunctionCall | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        return None
    return FunctionCall(name=name, arguments=_arguments_to_str(raw.get("arguments")))


def _tool_calls_from_wire(raw: Any) -> list[ToolCall] | None:
    if not isinstance(raw, list):
        return None
    calls: list[ToolCall] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        function = _function_call_from_wire(item.get("function"))
        if function is None:
            continue
        calls.append(ToolCall(
            id=str(item.get("id") or new_call_id()),
            function=function,
            type=str(item.get("type") or "function"),
        ))
    return calls


def _arguments_to_str(raw: Any) -> str:
    # Some backends send arguments as an already-decoded object.
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False)


class CallKind(str, Enum):
    MODERN = "modern"
    LEGACY = "legacy"
    TEXT = "text"


@dataclass(slots=True)
class Call:
    """One detected invocation, whichever encoding it arrived in."""

    kind: CallKind
    id: str
    name: str
    arguments: str
    original_text: str | None = None

    def parsed_arguments(self) -> dict[str, Any]:
        return parse_arguments(self.arguments)


def parse_arguments(raw: str | None) -> dict[str, Any]:
    """Decode a raw argument blob; anything but a JSON object becomes ``{}``."""
    try:
        value = json.loads(raw or "")
    except (json.JSONDecodeError, TypeError):
        return {}
    return value if isinstance(value, dict) else {}


@dataclass(slots=True)
class FunctionResult:
    function_name: str
    success: bool
    result: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_name": self.function_name,
            "success": self.success,
            "result": self.result,
        }


@dataclass(slots=True)
class ChatRequest:
    message: str
    history: list[Message] | None = None


@dataclass(slots=True)
class ChatResponse:
    message: str
    function_results: list[FunctionResult] | None = None
    updated_todos: list[dict[str, Any]] | None = None
    warnings: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": self.message}
        if self.function_results is not None:
            payload["function_results"] = [fr.to_dict() for fr in self.function_results]
        if self.updated_todos is not None:
            payload["updated_todos"] = self.updated_todos
        if self.warnings is not None:
            payload["warnings"] = list(self.warnings)
        return payload


@dataclass(slots=True)
class LoopOutcome:
    text: str
    function_results: list[FunctionResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    iterations: int = 0
