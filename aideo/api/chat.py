from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from aideo.agent.function_registry import function_infos
from aideo.api.schemas import ChatBody
from aideo.deps import get_chat_service
from aideo.errors import error_from_exception
from aideo.trace import get_current_trace_id

router = APIRouter(prefix="/v1", tags=["chat"])
logger = logging.getLogger(__name__)


def stream_as_sse(event_type: str, payload: dict[str, Any]) -> dict[str, str]:
    return {
        "event": event_type,
        "data": json.dumps(payload, ensure_ascii=False),
    }


@router.post("/chat")
async def chat(body: ChatBody, chat_service=Depends(get_chat_service)):
    response = await chat_service.chat(body.to_request())
    return response.to_dict()


@router.post("/chat/stream")
async def chat_stream(body: ChatBody, request: Request, chat_service=Depends(get_chat_service)):
    trace_id = str(getattr(request.state, "trace_id", get_current_trace_id()))
    events = await chat_service.chat_stream(body.to_request())

    async def event_generator():
        try:
            async for event in events:
                yield stream_as_sse(event.type, event.to_payload())
        except Exception as exc:  # noqa: BLE001
            logger.warning("stream aborted: %s", exc, extra={"trace_id": trace_id, "outcome": "error"})
            _, payload = error_from_exception(exc, trace_id)
            yield stream_as_sse("error", payload)

    return EventSourceResponse(event_generator())


@router.get("/functions")
async def list_functions():
    return {"functions": function_infos()}
