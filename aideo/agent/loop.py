"""
loop.py: bounded conversation loop

Each iteration sends the whole history, inspects the single returned choice
and either executes the detected calls (modern ``tool_calls``, then legacy
``function_call``, then text fallback, in that priority) and loops, or stops
on a plain answer. The backend is asked at most ``MAX_ITERATIONS`` times.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aideo.agent.dispatcher import FunctionDispatcher
from aideo.agent.function_registry import function_names
from aideo.agent.messages import Call, CallKind, FunctionResult, LoopOutcome, Message, new_call_id
from aideo.agent.negotiator import build_completion_body
from aideo.agent.prompts import TEXT_FALLBACK_WARNING
from aideo.agent.providers.base import ProviderAdapter
from aideo.agent.text_fallback import extract, strip_calls
from aideo.errors import ProtocolViolationError, TooManyFunctionCallsError
from aideo.models.settings import AiSettings
from aideo.observability.metrics import get_runtime_metrics

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5


class LoopState(str, Enum):
    AWAITING_RESPONSE = "awaiting_response"
    TOOL_CALLS_DETECTED = "tool_calls_detected"
    LEGACY_CALL_DETECTED = "legacy_call_detected"
    TEXT_FALLBACK_DETECTED = "text_fallback_detected"
    PLAIN_ANSWER = "plain_answer"


@dataclass(slots=True)
class Detection:
    state: LoopState
    calls: list[Call] = field(default_factory=list)
    cleaned_content: str | None = None


def detect_calls(message: Message, *, fallback_enabled: bool) -> Detection:
    """Classify one assistant message; structured calls always win over text."""
    if message.tool_calls:
        calls = [
            Call(kind=CallKind.MODERN, id=tc.id, name=tc.function.name, arguments=tc.function.arguments)
            for tc in message.tool_calls
            if tc.type == "function"
        ]
        if calls:
            return Detection(state=LoopState.TOOL_CALLS_DETECTED, calls=calls)
        logger.warning(
            "ignoring %d tool calls without a function type",
            len(message.tool_calls),
            extra={"call_kind": "modern"},
        )

    if message.function_call is not None:
        fc = message.function_call
        call = Call(kind=CallKind.LEGACY, id=new_call_id(), name=fc.name, arguments=fc.arguments)
        return Detection(state=LoopState.LEGACY_CALL_DETECTED, calls=[call])

    if fallback_enabled and message.content:
        calls = extract(message.content, function_names())
        if calls:
            return Detection(
                state=LoopState.TEXT_FALLBACK_DETECTED,
                calls=calls,
                cleaned_content=strip_calls(message.content, calls),
            )

    return Detection(state=LoopState.PLAIN_ANSWER)


def first_choice_message(response: dict[str, Any]) -> Message:
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProtocolViolationError("No response choice", cause="empty_choices")
    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    if not isinstance(message, dict):
        raise ProtocolViolationError("Response choice has no message", cause="missing_message")
    return Message.from_wire(message)


async def conversation_loop(
    *,
    provider: ProviderAdapter,
    dispatcher: FunctionDispatcher,
    settings: AiSettings,
    messages: list[Message],
    max_iterations: int = MAX_ITERATIONS,
) -> LoopOutcome:
    """
    Drive request / detect / execute / append until a plain answer.

    Args:
        provider: Backend adapter; one ``complete`` call per iteration.
        dispatcher: Executes detected calls against the task store.
        settings: AI settings read once for this invocation.
        messages: Full history, system context first (modified in place).
        max_iterations: Cap on backend requests.

    Returns:
        The final text with every executed FunctionResult and warning.

    Raises:
        TooManyFunctionCallsError: no plain answer within ``max_iterations``.
        AideoError: any backend, protocol or dispatch failure, unretried.
    """
    function_results: list[FunctionResult] = []
    warnings: list[str] = []
    state = LoopState.AWAITING_RESPONSE

    for iteration in range(max_iterations):
        logger.debug(
            "conversation_loop iteration=%d messages=%d state=%s",
            iteration, len(messages), state.value,
            extra={"iteration": iteration},
        )
        body = build_completion_body(settings, messages, stream=False)
        response = await provider.complete(body)
        assistant = first_choice_message(response)

        detection = detect_calls(assistant, fallback_enabled=settings.enable_text_fallback)
        state = detection.state

        if state is LoopState.PLAIN_ANSWER:
            logger.debug("conversation_loop done after %d iterations", iteration + 1)
            return LoopOutcome(
                text=assistant.content or "",
                function_results=function_results,
                warnings=warnings,
                iterations=iteration + 1,
            )

        if state is LoopState.TOOL_CALLS_DETECTED:
            logger.info("detected %d tool calls", len(detection.calls), extra={"call_kind": "modern"})
            messages.append(assistant)
            for call in detection.calls:
                result = await _execute(dispatcher, call, function_results)
                messages.append(Message(
                    role="tool",
                    name=call.name,
                    content=json.dumps(result, ensure_ascii=False),
                    tool_call_id=call.id,
                ))

        elif state is LoopState.LEGACY_CALL_DETECTED:
            call = detection.calls[0]
            logger.info("detected legacy function call: %s", call.name, extra={"call_kind": "legacy"})
            result = await _execute(dispatcher, call, function_results)
            messages.append(assistant)
            messages.append(Message(
                role="function",
                name=call.name,
                content=json.dumps(result, ensure_ascii=False),
            ))

        elif state is LoopState.TEXT_FALLBACK_DETECTED:
            logger.warning(
                "extracted %d function calls from text",
                len(detection.calls),
                extra={"call_kind": "text"},
            )
            get_runtime_metrics().text_fallback_total += 1
            if TEXT_FALLBACK_WARNING not in warnings:
                warnings.append(TEXT_FALLBACK_WARNING)
            results = [await _execute(dispatcher, call, function_results) for call in detection.calls]
            messages.append(Message(role="assistant", content=detection.cleaned_content or ""))
            for call, result in zip(detection.calls, results):
                messages.append(Message(
                    role="function",
                    name=call.name,
                    content=json.dumps(result, ensure_ascii=False),
                ))

    logger.warning("conversation_loop hit max_iterations=%d", max_iterations)
    raise TooManyFunctionCallsError(max_iterations)


async def _execute(
    dispatcher: FunctionDispatcher,
    call: Call,
    function_results: list[FunctionResult],
) -> dict[str, Any]:
    result = await dispatcher.execute(call.name, call.arguments)
    function_results.append(FunctionResult(function_name=call.name, success=True, result=result))
    return result
