"""Tests for the chat, delete and memory endpoints."""

from __future__ import annotations

import dataclasses
import tempfile
import unittest
from pathlib import Path

import httpx

import main
from app.constants import FAILURE_REPLY
from app.pipeline import ChatPipeline
from memory.repository import MemoryRepository


class StubProvider:
    def __init__(self) -> None:
        self.reply = "aku dengar kamu"
        self.complete_error: Exception | None = None
        self.prompts: list[list[dict[str, str]]] = []

    async def embed(self, text: str) -> list[float]:
        return [0.6, 0.8]

    async def complete(self, messages, *, temperature: float, max_tokens: int) -> str:
        if self.complete_error is not None:
            raise self.complete_error
        self.prompts.append(list(messages))
        return self.reply


class BrokenSearchRepository(MemoryRepository):
    def match_fragments(self, *args, **kwargs):
        raise RuntimeError("match_memory rpc failed")


class BrokenDeleteRepository(MemoryRepository):
    def delete_turns(self, user_id: str) -> int:
        raise RuntimeError("permission denied for table chats")


class ChatEndpointTests(unittest.IsolatedAsyncioTestCase):
    """Validate the HTTP surface with a stubbed provider and a temporary database."""

    async def asyncSetUp(self) -> None:
        self._original_pipeline = main.pipeline
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self._db_path = Path(temp_dir.name) / "piskoqo.db"
        self.provider = StubProvider()
        self._install(MemoryRepository)
        self._transport = httpx.ASGITransport(app=main.app)
        self._client = httpx.AsyncClient(transport=self._transport, base_url="http://testserver")

    async def asyncTearDown(self) -> None:
        await self._client.aclose()
        await self._transport.aclose()
        main.pipeline = self._original_pipeline

    def _install(self, repository_cls) -> MemoryRepository:
        repository = repository_cls(database_path=self._db_path)
        self.addCleanup(repository.dispose)
        main.pipeline = ChatPipeline(self.provider, repository)
        return repository

    async def test_chat_returns_reply_and_meta(self) -> None:
        response = await self._client.post("/api/chat", json={"user_id": "u1", "message": "halo"})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["reply"], "aku dengar kamu")
        self.assertEqual(payload["meta"], {"app": "piskoqo", "mode": "reflective", "emotion": 0.0})

    async def test_missing_user_id_defaults_to_anonymous(self) -> None:
        response = await self._client.post("/api/chat", json={"message": "halo"})
        self.assertEqual(response.status_code, 200)
        turns = main.pipeline.repository.recent_turns("anonymous")
        self.assertEqual(len(turns), 2)

    async def test_severity_reported_in_meta(self) -> None:
        response = await self._client.post(
            "/api/chat",
            json={"user_id": "u1", "message": "aku merasa hampa dan panik terus"},
        )
        payload = response.json()
        self.assertEqual(payload["meta"]["mode"], "therapeutic")
        self.assertAlmostEqual(payload["meta"]["emotion"], 1.3)

    async def test_provider_failure_returns_fallback(self) -> None:
        self.provider.complete_error = RuntimeError("upstream 500")
        response = await self._client.post("/api/chat", json={"user_id": "u1", "message": "halo"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"reply": FAILURE_REPLY})

    async def test_unconfigured_pipeline_returns_fallback(self) -> None:
        main.pipeline = None
        response = await self._client.post("/api/chat", json={"user_id": "u1", "message": "halo"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["reply"], FAILURE_REPLY)

    async def test_similarity_failure_still_replies(self) -> None:
        self._install(BrokenSearchRepository)
        response = await self._client.post("/api/chat", json={"user_id": "u1", "message": "halo"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["reply"], "aku dengar kamu")

    async def test_delete_removes_user_turns(self) -> None:
        repository = main.pipeline.repository
        for index in range(5):
            repository.append_turn("u1", "user" if index % 2 == 0 else "bot", f"pesan {index}")
        repository.append_turn("u2", "user", "tetap ada")

        response = await self._client.post("/api/chat/delete", json={"user_id": "u1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "deleted_rows": 5})
        self.assertEqual(list(repository.recent_turns("u1")), [])
        self.assertEqual(len(repository.recent_turns("u2")), 1)

    async def test_delete_requires_user_id(self) -> None:
        for body in ({}, {"user_id": ""}):
            with self.subTest(body=body):
                response = await self._client.post("/api/chat/delete", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {"ok": False})

    async def test_delete_store_error_is_reported(self) -> None:
        self._install(BrokenDeleteRepository)
        response = await self._client.post("/api/chat/delete", json={"user_id": "u1"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"ok": False, "error": "permission denied for table chats"},
        )

    async def test_memory_endpoint_indexes_fragment(self) -> None:
        response = await self._client.post(
            "/api/memory", json={"user_id": "u1", "content": "suka musik jazz"}
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()["ok"])

        await self._client.post("/api/chat", json={"user_id": "u1", "message": "lagi dengerin apa ya"})
        system_prompt = self.provider.prompts[-1][0]["content"]
        self.assertIn("suka musik jazz", system_prompt)

    async def test_memory_endpoint_rejects_blank_content(self) -> None:
        response = await self._client.post("/api/memory", json={"user_id": "u1", "content": "   "})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])

    async def test_malformed_chat_body_returns_fallback(self) -> None:
        requests = (
            {"content": b"not json", "headers": {"Content-Type": "application/json"}},
            {"json": {"user_id": "u1", "message": 123}},
            {"json": ["halo"]},
        )
        for kwargs in requests:
            with self.subTest(kwargs=kwargs):
                response = await self._client.post("/api/chat", **kwargs)
                self.assertEqual(response.status_code, 500)
                self.assertEqual(response.json(), {"reply": FAILURE_REPLY})
        self.assertEqual(list(main.pipeline.repository.recent_turns("u1")), [])

    async def test_malformed_delete_body_returns_not_ok(self) -> None:
        requests = (
            {"content": b"{", "headers": {"Content-Type": "application/json"}},
            {"json": {"user_id": 42}},
        )
        for kwargs in requests:
            with self.subTest(kwargs=kwargs):
                response = await self._client.post("/api/chat/delete", **kwargs)
                self.assertEqual(response.status_code, 500)
                self.assertEqual(response.json(), {"ok": False})

    async def test_malformed_memory_body_keeps_validation_error(self) -> None:
        response = await self._client.post("/api/memory", json={"user_id": "u1"})
        self.assertEqual(response.status_code, 422)
        self.assertIn("detail", response.json())

    async def test_ping(self) -> None:
        response = await self._client.get("/ping")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "alive")


class ClientLifecycleTests(unittest.IsolatedAsyncioTestCase):
    """Rebuilding clients must not close the ones still serving requests first."""

    async def asyncSetUp(self) -> None:
        self._originals = (main.runtime_settings, main.llm_client, main.repository, main.pipeline)
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        main.llm_client = main.repository = main.pipeline = None
        main.runtime_settings = dataclasses.replace(
            main.runtime_settings,
            provider_api_key="sk-test",
            database_path=Path(temp_dir.name) / "piskoqo.db",
            telemetry_enabled=False,
        )

    async def asyncTearDown(self) -> None:
        await main._shutdown_clients()
        main.runtime_settings, main.llm_client, main.repository, main.pipeline = self._originals

    async def test_reconfigure_swaps_before_closing_previous_clients(self) -> None:
        await main._configure_clients()
        old_pipeline = main.pipeline
        old_client = main.llm_client
        observed: list[object] = []
        original_aclose = old_client.aclose

        async def recording_aclose() -> None:
            observed.append(main.pipeline)
            await original_aclose()

        old_client.aclose = recording_aclose

        await main._configure_clients()

        self.assertIsNot(main.pipeline, old_pipeline)
        self.assertEqual(len(observed), 1)
        self.assertIs(observed[0], main.pipeline)
        self.assertTrue(old_client._client.is_closed)
        self.assertFalse(main.llm_client._client.is_closed)

    async def test_shutdown_clears_globals(self) -> None:
        await main._configure_clients()
        client = main.llm_client
        await main._shutdown_clients()
        self.assertIsNone(main.pipeline)
        self.assertIsNone(main.repository)
        self.assertTrue(client._client.is_closed)


if __name__ == "__main__":
    unittest.main()
