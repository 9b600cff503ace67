"""Best-effort recovery of function calls written into plain assistant text.

Two shapes are recognised, and only for registered function names:

* an invocation ``name({...})``, optionally wrapped in single backticks,
  whose body is exactly one JSON object;
* a tagged block ``<function_call>{"name": ..., "arguments": ...}</function_call>``
  (``<tool_call>`` is accepted too).

Everything else, including prose that merely mentions a function name or a
body that does not parse, is left alone.
"""
from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from aideo.agent.messages import Call, CallKind, new_call_id

_TAGGED_BLOCK = re.compile(r"<(function_call|tool_call)>\s*(.*?)\s*</\1>", re.DOTALL)
_decoder = json.JSONDecoder()


def extract(text: str | None, known_names: Iterable[str]) -> list[Call]:
    if not text:
        return []
    names = set(known_names)
    if not names:
        return []

    found: list[tuple[int, int, Call]] = []
    found.extend(_extract_tagged(text, names))
    taken = [(start, end) for start, end, _ in found]
    for start, end, call in _extract_invocations(text, names):
        if any(start < t_end and t_start < end for t_start, t_end in taken):
            continue
        found.append((start, end, call))

    found.sort(key=lambda item: item[0])
    return [call for _, _, call in found]


def _extract_tagged(text: str, names: set[str]) -> list[tuple[int, int, Call]]:
    results: list[tuple[int, int, Call]] = []
    for match in _TAGGED_BLOCK.finditer(text):
        try:
            payload = json.loads(match.group(2))
        except json.JSONDecodeError:
            continue
        if not isinstance(payload, dict):
            continue
        name = payload.get("name")
        if not isinstance(name, str) or name not in names:
            continue
        arguments = _normalize_arguments(payload.get("arguments", {}))
        if arguments is None:
            continue
        results.append((
            match.start(),
            match.end(),
            Call(
                kind=CallKind.TEXT,
                id=new_call_id(),
                name=name,
                arguments=arguments,
                original_text=match.group(0),
            ),
        ))
    return results


def _extract_invocations(text: str, names: set[str]) -> list[tuple[int, int, Call]]:
    alternation = "|".join(re.escape(name) for name in sorted(names, key=len, reverse=True))
    opener = re.compile(rf"(?<![\w.])({alternation})\s*\(\s*")

    results: list[tuple[int, int, Call]] = []
    pos = 0
    while True:
        match = opener.search(text, pos)
        if match is None:
            break
        pos = match.end()

        body_start = match.end()
        if body_start >= len(text) or text[body_start] != "{":
            continue
        try:
            args, body_end = _decoder.raw_decode(text, body_start)
        except json.JSONDecodeError:
            continue
        if not isinstance(args, dict):
            continue

        close = body_end
        while close < len(text) and text[close].isspace():
            close += 1
        if close >= len(text) or text[close] != ")":
            continue
        end = close + 1

        start = match.start()
        if start > 0 and text[start - 1] == "`" and end < len(text) and text[end] == "`":
            start -= 1
            end += 1

        results.append((
            start,
            end,
            Call(
                kind=CallKind.TEXT,
                id=new_call_id(),
                name=match.group(1),
                arguments=json.dumps(args, ensure_ascii=False),
                original_text=text[start:end],
            ),
        ))
        pos = end
    return results


def _normalize_arguments(raw: Any) -> str | None:
    if isinstance(raw, dict):
        return json.dumps(raw, ensure_ascii=False)
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            return None
        if isinstance(decoded, dict):
            return json.dumps(decoded, ensure_ascii=False)
    return None


def strip_calls(text: str, calls: Iterable[Call]) -> str:
    cleaned = text
    for call in calls:
        if call.original_text:
            cleaned = cleaned.replace(call.original_text, "", 1)
    return cleaned.strip()
