"""Tests for the provider client using an in-process mock transport."""

from __future__ import annotations

import json
import unittest

try:  # pragma: no cover - optional dependency
    import httpx  # type: ignore[unused-ignore]
except ModuleNotFoundError as exc:  # pragma: no cover
    httpx = None  # type: ignore[assignment]
    HTTPX_IMPORT_ERROR = exc
else:  # pragma: no cover
    HTTPX_IMPORT_ERROR = None

if httpx is not None:
    from brain.llm_client import ProviderClient


def _completion(content: str | None) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@unittest.skipIf(httpx is None, f"httpx unavailable: {HTTPX_IMPORT_ERROR}")
class ProviderClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler, *, max_retries: int = 2) -> "ProviderClient":
        client = ProviderClient(
            "https://provider.test/api/v1/",
            api_key="secret",
            chat_model="chat-model",
            embedding_model="embed-model",
            max_retries=max_retries,
            transport=httpx.MockTransport(handler),
        )
        client._base_backoff = 0.0
        self.addAsyncCleanup(client.aclose)
        return client

    async def test_complete_sends_sampling_and_returns_content(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion("halo juga"))

        client = self._client(handler)
        messages = [{"role": "system", "content": "sys"}, {"role": "user", "content": "halo"}]
        reply = await client.complete(messages, temperature=0.74, max_tokens=300)

        self.assertEqual(reply, "halo juga")
        self.assertEqual(len(seen), 1)
        request = seen[0]
        self.assertEqual(str(request.url), "https://provider.test/api/v1/chat/completions")
        self.assertEqual(request.headers["Authorization"], "Bearer secret")
        body = json.loads(request.content)
        self.assertEqual(body["model"], "chat-model")
        self.assertEqual(body["messages"], messages)
        self.assertEqual(body["temperature"], 0.74)
        self.assertEqual(body["max_tokens"], 300)

    async def test_missing_content_yields_empty_string(self) -> None:
        for payload in ({"choices": []}, _completion(None), {}):
            with self.subTest(payload=payload):
                client = self._client(lambda request, payload=payload: httpx.Response(200, json=payload))
                self.assertEqual(await client.complete([], temperature=0.5, max_tokens=10), "")

    async def test_embed_returns_vector(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            self.assertEqual(body, {"model": "embed-model", "input": "teks"})
            return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 3]}]})

        client = self._client(handler)
        self.assertEqual(await client.embed("teks"), [0.1, 0.2, 3.0])

    async def test_embed_rejects_malformed_payload(self) -> None:
        client = self._client(lambda request: httpx.Response(200, json={"data": []}))
        with self.assertRaises(RuntimeError):
            await client.embed("teks")

    async def test_retries_transient_status_then_succeeds(self) -> None:
        statuses = [503, 429]

        def handler(request: httpx.Request) -> httpx.Response:
            if statuses:
                return httpx.Response(statuses.pop(0))
            return httpx.Response(200, json=_completion("akhirnya"))

        client = self._client(handler, max_retries=2)
        self.assertEqual(await client.complete([], temperature=0.5, max_tokens=10), "akhirnya")
        self.assertEqual(statuses, [])

    async def test_retries_any_server_error_status(self) -> None:
        for status in (501, 505, 520, 529):
            with self.subTest(status=status):
                statuses = [status]
                calls: list[int] = []

                def handler(request: httpx.Request, statuses=statuses, calls=calls) -> httpx.Response:
                    calls.append(1)
                    if statuses:
                        return httpx.Response(statuses.pop(0))
                    return httpx.Response(200, json=_completion("pulih"))

                client = self._client(handler, max_retries=1)
                self.assertEqual(await client.complete([], temperature=0.5, max_tokens=10), "pulih")
                self.assertEqual(len(calls), 2)

    async def test_gives_up_after_max_retries(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(502)

        client = self._client(handler, max_retries=1)
        with self.assertRaises(httpx.HTTPStatusError):
            await client.complete([], temperature=0.5, max_tokens=10)
        self.assertEqual(len(calls), 2)

    async def test_non_retryable_status_raises_immediately(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(401, json={"error": "bad key"})

        client = self._client(handler)
        with self.assertRaises(httpx.HTTPStatusError):
            await client.complete([], temperature=0.5, max_tokens=10)
        self.assertEqual(len(calls), 1)

    async def test_transport_errors_propagate_after_retries(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            raise httpx.ConnectError("refused", request=request)

        client = self._client(handler, max_retries=2)
        with self.assertRaises(httpx.ConnectError):
            await client.embed("teks")
        self.assertEqual(len(calls), 3)


if __name__ == "__main__":
    unittest.main()
