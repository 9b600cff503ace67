"""Request bodies of the HTTP surface."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from aideo.agent.messages import ChatRequest, Message
from aideo.models.settings import DEFAULT_SYSTEM_PROMPT, AiSettings, FunctionCallingMode
from aideo.models.todo import UNSET, CreateTodoRequest, Priority, TodoStatus, UpdateTodoRequest


class MessageBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str
    content: str | None = None
    name: str | None = None
    function_call: dict[str, Any] | None = None
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None


class ChatBody(BaseModel):
    message: str
    history: list[MessageBody] | None = None

    def to_request(self) -> ChatRequest:
        history = None
        if self.history is not None:
            history = [Message.from_wire(item.model_dump(exclude_none=True)) for item in self.history]
        return ChatRequest(message=self.message, history=history)


class TodoCreateBody(BaseModel):
    text: str = Field(min_length=1)
    priority: Priority | None = None
    due_date: str | None = None
    tags: list[str] | None = None

    def to_request(self) -> CreateTodoRequest:
        return CreateTodoRequest(
            text=self.text,
            priority=self.priority,
            due_date=self.due_date,
            tags=self.tags,
        )


class TodoBatchBody(BaseModel):
    todos: list[TodoCreateBody]


class TodoUpdateBody(BaseModel):
    text: str | None = None
    completed: bool | None = None
    status: TodoStatus | None = None
    priority: Priority | None = None
    due_date: str | None = None
    tags: list[str] | None = None

    def to_request(self) -> UpdateTodoRequest:
        # Only fields present in the body patch the task; an explicit
        # ``"due_date": null`` clears the date.
        supplied = self.model_fields_set
        values: dict[str, Any] = {}
        for name in ("text", "completed", "status", "priority", "tags"):
            value = getattr(self, name)
            values[name] = value if name in supplied and value is not None else UNSET
        values["due_date"] = self.due_date if "due_date" in supplied else UNSET
        return UpdateTodoRequest(**values)


class SettingsBody(BaseModel):
    api_key: str | None = None
    api_base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=2048, gt=0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    function_calling_mode: FunctionCallingMode = FunctionCallingMode.AUTO
    enable_text_fallback: bool = True

    def to_settings(self) -> AiSettings:
        api_key = (self.api_key or "").strip() or None
        return AiSettings(
            api_key=api_key,
            api_base_url=self.api_base_url.strip().rstrip("/"),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            system_prompt=self.system_prompt,
            function_calling_mode=self.function_calling_mode,
            enable_text_fallback=self.enable_text_fallback,
        )
