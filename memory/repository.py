"""Persistence helpers for chat turns, memory fragments and personality vectors."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np
from sqlmodel import Session, SQLModel, create_engine, delete, select

from .models import SENDER_ROLES, ChatTurn, MemoryFragment, PersonalityVector

logger = logging.getLogger("piskoqo.memory")


@dataclass(frozen=True)
class FragmentMatch:
    """A memory fragment paired with its cosine similarity to the query."""

    id: int | None
    content: str
    similarity: float


def _check_sender(sender: str) -> str:
    if sender not in SENDER_ROLES:
        raise ValueError(f"Unknown sender role '{sender}'.")
    return sender


class MemoryRepository:
    """Encapsulates turn, fragment and personality storage using SQLite."""

    def __init__(self, database_path: Path | None = None) -> None:
        self.database_path = database_path or Path(__file__).resolve().parents[1] / "data" / "piskoqo.db"
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        database_uri = f"sqlite:///{self.database_path}"
        self._engine = create_engine(
            database_uri,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        SQLModel.metadata.create_all(self._engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager yielding a SQLModel session."""
        with Session(self._engine) as session:
            yield session

    # -------------------- turns -------------------- #

    def append_turn(self, user_id: str, sender: str, message: str) -> ChatTurn:
        """Persist a single turn stamped with the current time."""
        turn = ChatTurn(
            user_id=user_id,
            sender=_check_sender(sender),
            message=message,
            timestamp=datetime.now(timezone.utc),
        )
        with self.session() as session:
            session.add(turn)
            session.commit()
            session.refresh(turn)
            return turn

    def append_exchange(self, user_id: str, user_message: str, bot_message: str) -> tuple[ChatTurn, ChatTurn]:
        """Persist the user turn and the bot turn in one transaction."""
        user_turn = ChatTurn(
            user_id=user_id,
            sender="user",
            message=user_message,
            timestamp=datetime.now(timezone.utc),
        )
        bot_turn = ChatTurn(
            user_id=user_id,
            sender="bot",
            message=bot_message,
            timestamp=datetime.now(timezone.utc),
        )
        with self.session() as session:
            session.add(user_turn)
            session.flush()
            session.add(bot_turn)
            session.commit()
            session.refresh(user_turn)
            session.refresh(bot_turn)
            return user_turn, bot_turn

    def recent_turns(self, user_id: str, limit: int = 20) -> Sequence[ChatTurn]:
        """Fetch the user's most recent turns, newest first."""
        if limit <= 0:
            return []
        statement = (
            select(ChatTurn)
            .where(ChatTurn.user_id == user_id)
            .order_by(ChatTurn.timestamp.desc(), ChatTurn.id.desc())
            .limit(limit)
        )
        with self.session() as session:
            return list(session.exec(statement))

    def delete_turns(self, user_id: str) -> int:
        """Delete every stored turn for the user and return how many were removed."""
        statement = delete(ChatTurn).where(ChatTurn.user_id == user_id)
        with self.session() as session:
            result = session.exec(statement)
            session.commit()
        deleted = result.rowcount or 0
        logger.info("Deleted %s turns for user '%s'", deleted, user_id)
        return deleted

    # -------------------- fragments -------------------- #

    def add_fragment(self, user_id: str, content: str, embedding: Sequence[float]) -> MemoryFragment:
        fragment = MemoryFragment(
            user_id=user_id,
            content=content,
            embedding=[float(value) for value in embedding],
        )
        with self.session() as session:
            session.add(fragment)
            session.commit()
            session.refresh(fragment)
            return fragment

    def match_fragments(
        self,
        user_id: str,
        embedding: Sequence[float],
        *,
        threshold: float = 0.78,
        limit: int = 6,
    ) -> list[FragmentMatch]:
        """Return the user's fragments whose cosine similarity exceeds the threshold."""
        if limit <= 0 or not embedding:
            return []
        query = np.asarray(embedding, dtype=np.float32)
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0.0:
            return []
        statement = select(MemoryFragment).where(MemoryFragment.user_id == user_id)
        with self.session() as session:
            fragments = list(session.exec(statement))

        matches: list[FragmentMatch] = []
        for fragment in fragments:
            vector = np.asarray(fragment.embedding, dtype=np.float32)
            if vector.shape != query.shape:
                logger.debug(
                    "Skipping fragment %s with dimension %s (query has %s)",
                    fragment.id,
                    vector.shape,
                    query.shape,
                )
                continue
            norm = float(np.linalg.norm(vector))
            if norm == 0.0:
                continue
            similarity = float(np.dot(query, vector) / (query_norm * norm))
            if similarity > threshold:
                matches.append(FragmentMatch(fragment.id, fragment.content, similarity))
        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches[:limit]

    # -------------------- personality -------------------- #

    def load_personality(self, user_id: str) -> list[float] | None:
        with self.session() as session:
            record = session.get(PersonalityVector, user_id)
            if record is None:
                return None
            return list(record.vector)

    def upsert_personality(self, user_id: str, vector: Sequence[float]) -> PersonalityVector:
        """Insert or replace the user's vector; the last write wins."""
        values = [float(value) for value in vector]
        with self.session() as session:
            record = session.get(PersonalityVector, user_id)
            if record is None:
                record = PersonalityVector(user_id=user_id, vector=values)
            else:
                record.vector = values
                record.updated_at = datetime.now(timezone.utc)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def dispose(self) -> None:
        """Release database connections to allow filesystem cleanup."""
        self._engine.dispose()


__all__ = ["FragmentMatch", "MemoryRepository"]
