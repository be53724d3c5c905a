"""Async client for an OpenAI-compatible embeddings and chat-completions API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

import httpx

logger = logging.getLogger("piskoqo.llm_client")


class ProviderClient:
    """Lightweight wrapper around the provider's `/embeddings` and `/chat/completions` endpoints."""

    RETRYABLE_STATUS = {408, 409, 425, 429}

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        chat_model: str,
        embedding_model: str,
        timeout: float = 30.0,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") or "https://openrouter.ai/api/v1"
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)
        self.chat_model = chat_model
        self.embedding_model = embedding_model
        self._max_retries = max(0, int(max_retries))
        self._base_backoff = 0.4

    @property
    def base_url(self) -> str:
        return self._base_url

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for a single input string."""
        data = await self._post("/embeddings", {"model": self.embedding_model, "input": text})
        try:
            vector = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RuntimeError("Embedding response did not contain a vector") from exc
        return [float(value) for value in vector]

    async def complete(
        self,
        messages: Sequence[Mapping[str, str]],
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Request one chat completion and return the first choice's text."""
        payload = {
            "model": self.chat_model,
            "messages": [dict(message) for message in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        data = await self._post("/chat/completions", payload)
        return self._extract_reply(data)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        logger.debug("Dispatching request to provider endpoint '%s'", url)
        attempt = 0
        backoff = self._base_backoff
        while True:
            try:
                response = await self._client.post(url, json=payload)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise RuntimeError(f"Unexpected provider payload from {path}")
                return data
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                retryable = status_code >= 500 or status_code in self.RETRYABLE_STATUS
                logger.warning(
                    "Provider %s returned %s (retryable=%s attempt=%s/%s)",
                    path,
                    status_code,
                    retryable,
                    attempt + 1,
                    self._max_retries + 1,
                )
                if retryable and attempt < self._max_retries:
                    await asyncio.sleep(backoff)
                    backoff = min(backoff * 2, 4.0)
                    attempt += 1
                    continue
                raise
            except httpx.RequestError as exc:
                logger.warning(
                    "Provider %s request error (attempt %s/%s): %s",
                    path,
                    attempt + 1,
                    self._max_retries + 1,
                    exc,
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(backoff)
                    backoff = min(backoff * 2, 4.0)
                    attempt += 1
                    continue
                raise

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @staticmethod
    def _extract_reply(data: Mapping[str, Any]) -> str:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else ""


__all__ = ["ProviderClient"]
