"""Provider base type: one chat-completions backend reachable over some transport."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator


class ProviderAdapter(ABC):
    @abstractmethod
    async def complete(self, body: dict[str, Any]) -> dict[str, Any]:
        """Send a non-streaming request and return the decoded response body."""

    @abstractmethod
    def stream(self, body: dict[str, Any]) -> AsyncIterator[bytes]:
        """Send a streaming request and yield raw transport chunks as they arrive."""

    async def check_connection(self) -> bool:  # pragma: no cover
        raise NotImplementedError("connection check not implemented for this provider")
