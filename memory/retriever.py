"""Recent-history and semantic memory retrieval for the reply pipeline."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from .models import ChatTurn
from .repository import FragmentMatch, MemoryRepository

logger = logging.getLogger("piskoqo.memory.retriever")


@dataclass(frozen=True)
class HistoryLine:
    sender: str
    message: str


@dataclass(frozen=True)
class MemoryRecall:
    """History in chronological order plus semantically matched fragments."""

    history: list[HistoryLine] = field(default_factory=list)
    fragments: list[FragmentMatch] = field(default_factory=list)

    def as_text(self) -> str:
        lines = [f"{line.sender}: {line.message}" for line in self.history]
        lines.extend(fragment.content for fragment in self.fragments)
        return "\n".join(lines)


class MemoryRetriever:
    """Fetch memory for a user; read failures degrade to empty results."""

    def __init__(
        self,
        repository: MemoryRepository,
        *,
        history_limit: int = 20,
        match_count: int = 6,
        match_threshold: float = 0.78,
    ) -> None:
        self._repository = repository
        self.history_limit = history_limit
        self.match_count = match_count
        self.match_threshold = match_threshold

    async def fetch_history(self, user_id: str) -> list[HistoryLine]:
        try:
            turns: Sequence[ChatTurn] = await asyncio.to_thread(
                self._repository.recent_turns, user_id, self.history_limit
            )
        except Exception as exc:
            logger.warning("History lookup failed for user '%s': %s", user_id, exc)
            return []
        return [HistoryLine(turn.sender, turn.message) for turn in reversed(list(turns))]

    async def semantic_search(self, user_id: str, embedding: Sequence[float] | None) -> list[FragmentMatch]:
        if not embedding:
            return []
        try:
            return await asyncio.to_thread(
                self._repository.match_fragments,
                user_id,
                embedding,
                threshold=self.match_threshold,
                limit=self.match_count,
            )
        except Exception as exc:
            logger.warning("Semantic memory search failed for user '%s': %s", user_id, exc)
            return []

    async def recall(self, user_id: str, embedding: Sequence[float] | None) -> MemoryRecall:
        """Run the history and similarity reads concurrently."""
        history, fragments = await asyncio.gather(
            self.fetch_history(user_id),
            self.semantic_search(user_id, embedding),
        )
        return MemoryRecall(history=history, fragments=fragments)


__all__ = ["HistoryLine", "MemoryRecall", "MemoryRetriever"]
