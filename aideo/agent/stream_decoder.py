"""Incremental decoder for the streaming chat-completions transport.

The transport is a byte stream of newline-terminated ``data: <json>`` lines,
closed by ``data: [DONE]``. Chunk boundaries are arbitrary: a chunk may hold
several lines, or end in the middle of a line or of a multi-byte character.
"""
from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, ClassVar, Union

from aideo.agent.dispatcher import FunctionDispatcher

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


@dataclass(slots=True)
class ContentDeltaEvent:
    type: ClassVar[str] = "content_delta"
    content: str

    def to_payload(self) -> dict[str, Any]:
        return {"content": self.content}


@dataclass(slots=True)
class FunctionCallResultEvent:
    type: ClassVar[str] = "function_call_result"
    name: str
    result: dict[str, Any]

    def to_payload(self) -> dict[str, Any]:
        return {"function_call": {"name": self.name, "result": self.result}}


@dataclass(slots=True)
class StreamDoneEvent:
    type: ClassVar[str] = "done"
    content: str

    def to_payload(self) -> dict[str, Any]:
        return {"content": self.content}


StreamEvent = Union[ContentDeltaEvent, FunctionCallResultEvent, StreamDoneEvent]


class LineBuffer:
    """Turns arbitrary byte chunks into complete text lines."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        text = self._pending + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._pending = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        text = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        text = text.rstrip("\r")
        return [text] if text else []


@dataclass(slots=True)
class _CallAccumulator:
    name: str = ""
    arguments: list[str] = field(default_factory=list)
    tool_index: int | None = None

    def add(self, name: Any, arguments: Any) -> None:
        if isinstance(name, str) and name:
            self.name = name
        if isinstance(arguments, str):
            self.arguments.append(arguments)


class StreamDecoder:
    """Single-use decoder for one streamed response.

    Yields content deltas as they arrive, then, once the sentinel is seen (or
    the transport ends), the result of the single accumulated function call
    if there is one, then exactly one done event with the full content.
    """

    def __init__(self, dispatcher: FunctionDispatcher) -> None:
        self.dispatcher = dispatcher
        self._content: list[str] = []
        self._call = _CallAccumulator()
        self._finished = False

    async def decode(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
        buffer = LineBuffer()
        iterator = chunks.__aiter__()
        try:
            async for chunk in iterator:
                for line in buffer.feed(chunk):
                    event = self._handle_line(line)
                    if event is not None:
                        yield event
                    if self._finished:
                        break
                if self._finished:
                    break
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        if not self._finished:
            for line in buffer.flush():
                event = self._handle_line(line)
                if event is not None:
                    yield event
            if not self._finished:
                logger.warning("stream ended without the done sentinel")

        if self._call.name:
            result = await self.dispatcher.execute(self._call.name, "".join(self._call.arguments))
            yield FunctionCallResultEvent(name=self._call.name, result=result)

        yield StreamDoneEvent(content="".join(self._content))

    def _handle_line(self, line: str) -> ContentDeltaEvent | None:
        if self._finished or not line.startswith(DATA_PREFIX):
            return None

        data = line[len(DATA_PREFIX):]
        if data.startswith(" "):
            data = data[1:]
        if data.strip() == DONE_SENTINEL:
            self._finished = True
            return None

        try:
            chunk = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("ignoring undecodable stream line: %s", data[:200])
            return None
        choices = chunk.get("choices") if isinstance(chunk, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return None

        function_call = delta.get("function_call")
        if isinstance(function_call, dict):
            self._call.add(function_call.get("name"), function_call.get("arguments"))
        self._accumulate_tool_calls(delta.get("tool_calls"))

        content = delta.get("content")
        if isinstance(content, str) and content:
            self._content.append(content)
            return ContentDeltaEvent(content=content)
        return None

    def _accumulate_tool_calls(self, tool_calls: Any) -> None:
        # Only one call is accumulated per stream: the first tool index seen.
        if not isinstance(tool_calls, list):
            return
        for item in tool_calls:
            if not isinstance(item, dict):
                continue
            index = item.get("index", 0)
            if self._call.tool_index is None:
                self._call.tool_index = index
            elif index != self._call.tool_index:
                logger.warning("ignoring streamed tool call at index %s", index)
                continue
            function = item.get("function")
            if isinstance(function, dict):
                self._call.add(function.get("name"), function.get("arguments"))
