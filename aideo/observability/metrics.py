from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class RuntimeMetrics:
    chats_total: int = 0
    chats_failed_total: int = 0
    streams_total: int = 0
    streams_failed_total: int = 0
    text_fallback_total: int = 0
    function_calls_total: Dict[str, int] = field(default_factory=dict)

    def increment_function_call(self, function_name: str) -> None:
        self.function_calls_total[function_name] = self.function_calls_total.get(function_name, 0) + 1

    def snapshot(self) -> dict:
        return {
            "chats_total": self.chats_total,
            "chats_failed_total": self.chats_failed_total,
            "streams_total": self.streams_total,
            "streams_failed_total": self.streams_failed_total,
            "text_fallback_total": self.text_fallback_total,
            "function_calls_total": dict(self.function_calls_total),
        }


_runtime_metrics = RuntimeMetrics()


def get_runtime_metrics() -> RuntimeMetrics:
    return _runtime_metrics
