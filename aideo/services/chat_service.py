from __future__ import annotations

import logging
from typing import AsyncGenerator, AsyncIterator, Callable

from aideo.agent.dispatcher import FunctionDispatcher
from aideo.agent.loop import conversation_loop
from aideo.agent.messages import ChatRequest, ChatResponse, Message
from aideo.agent.negotiator import build_completion_body
from aideo.agent.prompts import build_system_context
from aideo.agent.providers.base import ProviderAdapter
from aideo.agent.providers.openai_compatible import OpenAICompatibleProvider
from aideo.agent.stream_decoder import StreamDecoder, StreamEvent
from aideo.db.settings_repository import SettingsRepository
from aideo.db.todo_repository import TodoRepository
from aideo.errors import MissingApiKeyError, MissingBaseUrlError
from aideo.models.settings import AiSettings
from aideo.observability.metrics import get_runtime_metrics

logger = logging.getLogger(__name__)
metrics = get_runtime_metrics()

ProviderFactory = Callable[[AiSettings], ProviderAdapter]


def default_provider_factory(timeout_seconds: float = 60.0) -> ProviderFactory:
    def build(settings: AiSettings) -> ProviderAdapter:
        return OpenAICompatibleProvider(
            api_key=settings.api_key or "",
            base_url=settings.api_base_url,
            timeout_seconds=timeout_seconds,
        )

    return build


async def _count_stream_failures(events: AsyncGenerator[StreamEvent, None]) -> AsyncIterator[StreamEvent]:
    try:
        async for event in events:
            yield event
    except Exception:
        metrics.streams_failed_total += 1
        raise
    finally:
        await events.aclose()


class ChatService:
    def __init__(
        self,
        *,
        settings_repo: SettingsRepository,
        todo_repo: TodoRepository,
        dispatcher: FunctionDispatcher,
        provider_factory: ProviderFactory | None = None,
    ):
        self.settings_repo = settings_repo
        self.todo_repo = todo_repo
        self.dispatcher = dispatcher
        self.provider_factory = provider_factory or default_provider_factory()

    async def chat(self, request: ChatRequest) -> ChatResponse:
        logger.info("chat request received")
        metrics.chats_total += 1
        try:
            settings = await self._load_settings()
            messages = await self._build_messages(settings, request)
            outcome = await conversation_loop(
                provider=self.provider_factory(settings),
                dispatcher=self.dispatcher,
                settings=settings,
                messages=messages,
            )
            updated_todos = await self.todo_repo.get_all()
        except Exception:
            metrics.chats_failed_total += 1
            raise

        return ChatResponse(
            message=outcome.text,
            function_results=outcome.function_results or None,
            updated_todos=[todo.to_dict() for todo in updated_todos],
            warnings=outcome.warnings or None,
        )

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[StreamEvent]:
        """Stream one completion; configuration errors surface before any event."""
        logger.info("streaming chat request received")
        metrics.streams_total += 1
        try:
            settings = await self._load_settings()
            messages = await self._build_messages(settings, request)
        except Exception:
            metrics.streams_failed_total += 1
            raise
        provider = self.provider_factory(settings)
        body = build_completion_body(settings, messages, stream=True)
        return _count_stream_failures(StreamDecoder(self.dispatcher).decode(provider.stream(body)))

    async def check_connection(self) -> bool:
        settings = await self._load_settings()
        return await self.provider_factory(settings).check_connection()

    async def _load_settings(self) -> AiSettings:
        settings = await self.settings_repo.get()
        if not (settings.api_key or "").strip():
            raise MissingApiKeyError()
        if not settings.api_base_url.strip():
            raise MissingBaseUrlError()
        return settings

    async def _build_messages(self, settings: AiSettings, request: ChatRequest) -> list[Message]:
        todos = await self.todo_repo.get_all()
        messages = [Message(role="system", content=build_system_context(settings.system_prompt, todos))]
        messages.extend(request.history or [])
        messages.append(Message(role="user", content=request.message))
        return messages
