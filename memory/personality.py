"""Accessor for the per-user personality vector."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from .repository import MemoryRepository

logger = logging.getLogger("piskoqo.memory.personality")


class PersonalityStore:
    """Read and upsert personality vectors without failing the caller.

    Writers are expected to be one per user; concurrent upserts for the same
    user resolve as last write wins.
    """

    def __init__(self, repository: MemoryRepository) -> None:
        self._repository = repository

    async def load(self, user_id: str) -> list[float] | None:
        try:
            return await asyncio.to_thread(self._repository.load_personality, user_id)
        except Exception as exc:
            logger.warning("Personality lookup failed for user '%s': %s", user_id, exc)
            return None

    async def save(self, user_id: str, vector: Sequence[float]) -> bool:
        """Upsert the vector; returns False when the write failed."""
        try:
            await asyncio.to_thread(self._repository.upsert_personality, user_id, vector)
        except Exception as exc:
            logger.warning("Personality update failed for user '%s': %s", user_id, exc)
            return False
        return True


__all__ = ["PersonalityStore"]
