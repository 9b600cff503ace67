"""OpenAI-compatible Chat Completions backend over raw HTTP.

Requests are sent with ``httpx`` rather than the SDK because the body may carry
both the modern ``tools`` and the legacy ``functions`` encodings at once, and
the streaming path needs the raw bytes for :mod:`aideo.agent.stream_decoder`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx
import openai

from aideo.agent.providers.base import ProviderAdapter
from aideo.errors import BackendError, TransportError

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 2000


class OpenAICompatibleProvider(ProviderAdapter):
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def chat_completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def complete(self, body: dict[str, Any]) -> dict[str, Any]:
        logger.debug("sending chat completion to %s model=%s", self.base_url, body.get("model"))
        try:
            async with self._client() as client:
                response = await client.post(self.chat_completions_url, json=body, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise TransportError("Backend request timed out.", cause="network_timeout") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Backend request failed: {exc}", cause=exc.__class__.__name__) from exc

        if not response.is_success:
            raise _status_error(response.status_code, response.text)

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("failed to parse backend response: %s", exc)
            raise BackendError(f"Invalid JSON response: {exc}", cause="invalid_json") from exc
        if not isinstance(payload, dict):
            raise BackendError("Invalid JSON response: expected an object", cause="invalid_json")
        return payload

    async def stream(self, body: dict[str, Any]) -> AsyncIterator[bytes]:
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", self.chat_completions_url, json=body, headers=self._headers()
                ) as response:
                    if not response.is_success:
                        raw = await response.aread()
                        raise _status_error(response.status_code, raw.decode("utf-8", errors="replace"))
                    async for chunk in response.aiter_bytes():
                        yield chunk
        except httpx.TimeoutException as exc:
            raise TransportError("Backend stream timed out.", cause="network_timeout") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Backend stream failed: {exc}", cause=exc.__class__.__name__) from exc

    async def check_connection(self) -> bool:
        """List models through the SDK; a non-2xx answer means "not reachable"."""
        async with self._client() as http_client:
            client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=http_client,
                max_retries=0,
            )
            try:
                await client.models.list()
            except openai.APIStatusError as exc:
                logger.info("connection check rejected with status %d", exc.status_code)
                return False
            except openai.APIConnectionError as exc:
                raise TransportError(f"Backend unreachable: {exc}", cause="connection_check") from exc
        return True


def _status_error(status_code: int, body: str) -> BackendError:
    logger.error("backend error status=%d body=%s", status_code, body[:_ERROR_BODY_LIMIT])
    return BackendError(
        f"HTTP {status_code}: {body[:_ERROR_BODY_LIMIT]}",
        details={"status_code": status_code},
        cause="http_status_error",
    )
