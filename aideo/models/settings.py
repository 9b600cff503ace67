from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_SYSTEM_PROMPT = """You are a helpful task assistant. You help the user manage their to-do list.

You can:
- add new tasks (add_todos)
- complete tasks (complete_todo)
- delete tasks (delete_todo)
- query tasks (query_todos)
- report statistics (get_statistics)

Call the appropriate function for each natural-language request and keep replies short and friendly.

When the user asks you to create tasks, work out what they are trying to achieve and break large goals into small, concrete, actionable tasks."""


class FunctionCallingMode(str, Enum):
    AUTO = "auto"
    TOOLS = "tools"
    FUNCTIONS = "functions"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, value: str | None) -> "FunctionCallingMode":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.AUTO


@dataclass(slots=True)
class AiSettings:
    api_key: str | None = None
    api_base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 2048
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    function_calling_mode: FunctionCallingMode = FunctionCallingMode.AUTO
    enable_text_fallback: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "api_base_url": self.api_base_url,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "system_prompt": self.system_prompt,
            "function_calling_mode": self.function_calling_mode.value,
            "enable_text_fallback": self.enable_text_fallback,
        }

    @property
    def chat_completions_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/chat/completions"
