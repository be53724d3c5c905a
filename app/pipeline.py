"""Reply pipeline turning one inbound user message into a persisted exchange."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from app.chat_context import build_messages, build_system_prompt
from app.constants import APP_NAME, DEFAULT_HEURISTICS, HeuristicConfig
from app.telemetry import compose_turn_telemetry, log_turn
from brain.emotion import EmotionScore, score_emotion
from brain.intent_router import IntentProfile, profile_intent
from brain.llm_client import ProviderClient
from brain.policy import SamplingPolicy, derive_sampling, select_mode
from brain.safety_guard import SafetyGuard, SafetyVerdict
from memory.personality import PersonalityStore
from memory.repository import MemoryRepository
from memory.retriever import MemoryRecall, MemoryRetriever
from utils.normalizer import normalize_text

logger = logging.getLogger("piskoqo.pipeline")


@dataclass
class ChatResult:
    """Outcome of one handled message."""

    reply: str
    mode: str
    emotion: EmotionScore
    intent: IntentProfile
    sampling: SamplingPolicy
    recall: MemoryRecall
    safety: SafetyVerdict
    personality_saved: bool = False
    telemetry: dict[str, Any] = field(default_factory=dict)

    def as_response(self, app_name: str = APP_NAME) -> dict[str, Any]:
        return {
            "reply": self.reply,
            "meta": {
                "app": app_name,
                "mode": self.mode,
                "emotion": self.emotion.severity,
            },
        }


class ChatPipeline:
    """Sequence heuristics, retrieval, generation and persistence for a turn.

    The provider client and repository are created once by the caller and
    shared across requests; the pipeline keeps no per-request state.
    """

    def __init__(
        self,
        provider: ProviderClient,
        repository: MemoryRepository,
        *,
        config: HeuristicConfig | None = None,
        safety_guard: SafetyGuard | None = None,
        telemetry_path: Path | None = None,
    ) -> None:
        self.config = config or DEFAULT_HEURISTICS
        self.provider = provider
        self.repository = repository
        self.retriever = MemoryRetriever(
            repository,
            history_limit=self.config.history_limit,
            match_count=self.config.match_count,
            match_threshold=self.config.match_threshold,
        )
        self.personality = PersonalityStore(repository)
        self.safety_guard = safety_guard or SafetyGuard(
            pattern=self.config.unsafe_reply_pattern,
            safe_reply=self.config.safe_reply,
        )
        self.telemetry_path = telemetry_path

    async def handle(self, user_id: str, message: str | None) -> ChatResult:
        """Produce, persist and return the reply for one user message.

        Retrieval and personality failures degrade quietly; model and
        persistence failures propagate to the caller.
        """
        started = time.perf_counter()
        text = normalize_text(message, max_length=self.config.max_message_chars)

        emotion = score_emotion(text, self.config)
        intent = profile_intent(text, self.config)
        mode = select_mode(emotion, intent, self.config)
        sampling = derive_sampling(emotion, self.config)

        embedding = await self._embed(text)
        recall, personality = await asyncio.gather(
            self.retriever.recall(user_id, embedding),
            self.personality.load(user_id),
        )

        system = build_system_prompt(recall.as_text(), personality, mode, self.config)
        raw_reply = await self.provider.complete(
            build_messages(system, text),
            **sampling.as_kwargs(),
        )
        reply, verdict = self.safety_guard.apply(raw_reply)
        if verdict.flagged:
            logger.warning("Safety gate replaced reply for user '%s' (matches=%s)", user_id, verdict.matches)

        await asyncio.to_thread(self.repository.append_exchange, user_id, text, reply)

        personality_saved = False
        if embedding is not None:
            personality_saved = await self.personality.save(user_id, embedding)

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        telemetry = compose_turn_telemetry(
            user_id=user_id,
            mode=mode,
            emotion=emotion.as_dict(),
            intent=intent.as_dict(),
            history_count=len(recall.history),
            fragment_count=len(recall.fragments),
            embedded=embedding is not None,
            safety_flagged=verdict.flagged,
            personality_saved=personality_saved,
            elapsed_ms=elapsed_ms,
        )
        log_turn(telemetry, self.telemetry_path, logger=logger)
        logger.info(
            "Handled message for user '%s' mode=%s severity=%.2f in %.0fms",
            user_id,
            mode,
            emotion.severity,
            elapsed_ms,
        )
        return ChatResult(
            reply=reply,
            mode=mode,
            emotion=emotion,
            intent=intent,
            sampling=sampling,
            recall=recall,
            safety=verdict,
            personality_saved=personality_saved,
            telemetry=telemetry,
        )

    async def remember(self, user_id: str, content: str | None):
        """Embed and store a memory fragment for later semantic search."""
        text = normalize_text(content, max_length=self.config.max_message_chars)
        if not text:
            raise ValueError("content must not be empty")
        embedding = await self.provider.embed(text)
        return await asyncio.to_thread(self.repository.add_fragment, user_id, text, embedding)

    async def forget(self, user_id: str) -> int:
        """Bulk delete the user's stored turns."""
        return await asyncio.to_thread(self.repository.delete_turns, user_id)

    async def _embed(self, text: str) -> list[float] | None:
        try:
            return await self.provider.embed(text)
        except Exception as exc:
            logger.warning("Embedding request failed; continuing without semantic memory: %s", exc)
            return None


__all__ = ["ChatPipeline", "ChatResult"]
